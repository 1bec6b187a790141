from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from tipjar_common.utils.json_model import JsonModel


class ErrorDetails(JsonModel):
    scope: str
    code: str
    message: str
    details: dict[str, Any] | None = None
    context: dict[str, Any] | None = None


class ErrorConfig(JsonModel):
    scope: str
    code: str
    default_message: str
    http_status: int | None = None
    retryable: bool = False
    send_notification: bool = True

    def create(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        http_status: int | None = None,
        cause: BaseException | None = None,
        retryable: bool | None = None,
        send_notification: bool | None = None,
    ) -> AppException:
        msg = message if message is not None else self.default_message
        http = http_status if http_status is not None else self.http_status
        retry = self.retryable if retryable is None else retryable
        notify = self.send_notification if send_notification is None else send_notification

        # If the cause is also an AppException, keep its identity and merge details
        if isinstance(cause, AppException):
            scope = cause.details.scope
            code = cause.details.code
            http = cause.http_status
            retry = cause.retryable
            notify = cause.send_notification
            ctx = cause.details.context
            if details and cause.details.details:
                details = {**cause.details.details, **details}
            elif cause.details.details:
                details = cause.details.details
            if cause.details.message:
                msg = f"{msg}: {cause.details.message}" if msg else cause.details.message
        else:
            scope = self.scope
            code = self.code
            ctx = None

        app_error = AppError(
            details=ErrorDetails(scope=scope, code=code, message=msg, details=details, context=ctx),
            http_status=http,
            cause=cause,
            retryable=retry,
            send_notification=notify,
        )
        return AppException(app_error)

    def is_(self, error: BaseException) -> bool:
        return AppException.is_(error, self)


class Errors:
    class Generic:
        INVALID_INPUT = ErrorConfig(scope="generic", code="invalid_input", default_message="Invalid input", http_status=400)
        ACCESS_DENIED = ErrorConfig(scope="generic", code="access_denied", default_message="Access denied", http_status=403)
        NOT_FOUND = ErrorConfig(scope="generic", code="not_found", default_message="Not found", http_status=404)
        INTERNAL_ERROR = ErrorConfig(scope="generic", code="internal_error", default_message="Internal error", http_status=500)

    class Auth:
        MISSING_TOKEN = ErrorConfig(scope="auth", code="missing_token", default_message="Authentication required", http_status=401)
        INVALID_TOKEN = ErrorConfig(scope="auth", code="invalid_token", default_message="Invalid or expired token", http_status=401)
        ADMIN_REQUIRED = ErrorConfig(scope="auth", code="admin_required", default_message="Admin access required", http_status=403)

    class Profile:
        NOT_FOUND = ErrorConfig(scope="profile", code="not_found", default_message="Profile not found", http_status=404)
        USERNAME_TAKEN = ErrorConfig(scope="profile", code="username_taken", default_message="Username is already taken", http_status=409)
        INVALID_USERNAME = ErrorConfig(scope="profile", code="invalid_username", default_message="Invalid username", http_status=400)
        INVALID_TIERS = ErrorConfig(scope="profile", code="invalid_tiers", default_message="Invalid donation tier amounts", http_status=400)

    class Donation:
        AMOUNT_TOO_LOW = ErrorConfig(scope="donation", code="amount_too_low", default_message="Minimum amount is 1 PLN", http_status=400)
        NOT_FOUND = ErrorConfig(scope="donation", code="not_found", default_message="Payment not found", http_status=404)

    class Processor:
        UNAVAILABLE = ErrorConfig(
            scope="processor",
            code="unavailable",
            default_message="Payment service unavailable",
            http_status=503,
            retryable=True,
        )
        NOT_CONFIGURED = ErrorConfig(scope="processor", code="not_configured", default_message="Payment processor is not configured", http_status=500)
        AUTHENTICATION_FAILED = ErrorConfig(
            scope="processor", code="authentication_failed", default_message="Payment processor authentication failed", http_status=502
        )
        INVALID_REQUEST = ErrorConfig(scope="processor", code="invalid_request", default_message="Invalid payment request", http_status=400)
        RATE_LIMITED = ErrorConfig(
            scope="processor", code="rate_limited", default_message="Payment processor rate limit exceeded", http_status=429, retryable=True
        )
        CONNECTION_FAILED = ErrorConfig(
            scope="processor", code="connection_failed", default_message="Could not reach payment processor", http_status=502, retryable=True
        )
        API_ERROR = ErrorConfig(scope="processor", code="api_error", default_message="Payment processor error", http_status=502)
        CONFIRMATION_FAILED = ErrorConfig(
            scope="processor", code="confirmation_failed", default_message="Payment was not confirmed", http_status=400
        )

    class Webhook:
        MISSING_SIGNATURE = ErrorConfig(scope="webhook", code="missing_signature", default_message="Missing signature", http_status=400)
        INVALID_SIGNATURE = ErrorConfig(scope="webhook", code="invalid_signature", default_message="Invalid signature", http_status=400)
        HANDLER_FAILED = ErrorConfig(scope="webhook", code="handler_failed", default_message="Webhook handler failed", http_status=500)

    class Payout:
        INVALID_AMOUNT = ErrorConfig(scope="payout", code="invalid_amount", default_message="Invalid amount", http_status=400)
        BELOW_MINIMUM = ErrorConfig(scope="payout", code="below_minimum", default_message="Minimum payout amount is 10 PLN", http_status=400)
        INSUFFICIENT_FUNDS = ErrorConfig(
            scope="payout", code="insufficient_funds", default_message="Amount exceeds available balance", http_status=400
        )
        BANK_ACCOUNT_REQUIRED = ErrorConfig(
            scope="payout", code="bank_account_required", default_message="A bank account is required", http_status=400
        )
        KYC_REQUIRED = ErrorConfig(scope="payout", code="kyc_required", default_message="Identity verification is required", http_status=403)

    class BankAccount:
        NOT_FOUND = ErrorConfig(scope="bank_account", code="not_found", default_message="Bank account not found", http_status=404)
        INVALID = ErrorConfig(scope="bank_account", code="invalid", default_message="Invalid bank account details", http_status=400)

    class Goal:
        NOT_FOUND = ErrorConfig(scope="goal", code="not_found", default_message="Goal not found", http_status=404)
        INVALID = ErrorConfig(scope="goal", code="invalid", default_message="Invalid goal", http_status=400)

    class Verification:
        INVALID_CODE = ErrorConfig(scope="verification", code="invalid_code", default_message="Invalid verification code", http_status=400)
        PHONE_MISSING = ErrorConfig(
            scope="verification", code="phone_missing", default_message="No phone number on file", http_status=400
        )

    class Onboarding:
        STEP_OUT_OF_ORDER = ErrorConfig(
            scope="onboarding", code="step_out_of_order", default_message="Complete the previous onboarding steps first", http_status=409
        )
        INCOMPLETE = ErrorConfig(scope="onboarding", code="incomplete", default_message="Onboarding is not completed", http_status=403)
        INVALID_PERSONAL_DATA = ErrorConfig(
            scope="onboarding", code="invalid_personal_data", default_message="Invalid personal data", http_status=400
        )


class AppError(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    details: ErrorDetails = Field(..., description="Error details")
    http_status: int | None = Field(default=None, description="HTTP status code")
    retryable: bool = Field(default=False, description="Whether the error is retryable")
    send_notification: bool = Field(default=True, description="Whether to send notification")
    cause: BaseException | None = Field(default=None, description="Underlying cause")

    def __init__(
        self,
        details: ErrorDetails,
        http_status: int | None = None,
        cause: BaseException | None = None,
        retryable: bool = False,
        send_notification: bool = True,
        **data: Any,
    ) -> None:
        super().__init__(
            details=details,
            http_status=http_status,
            retryable=retryable and (cause is None or should_retry_exception(cause)),
            send_notification=send_notification,
            cause=cause,
            **data,
        )


class AppException(Exception):
    """Exception wrapper for AppError that can be raised."""

    def __init__(self, app_error: AppError) -> None:
        self.app_error = app_error
        super().__init__(app_error.details.message)

    @property
    def details(self) -> ErrorDetails:
        return self.app_error.details

    @property
    def http_status(self) -> int | None:
        return self.app_error.http_status

    @property
    def retryable(self) -> bool:
        return self.app_error.retryable

    @property
    def send_notification(self) -> bool:
        return self.app_error.send_notification

    @property
    def cause(self) -> BaseException | None:
        return self.app_error.cause

    @staticmethod
    def is_any_of(error: BaseException, *errors: ErrorConfig) -> bool:
        return any(AppException.is_(error, e) for e in errors)

    @staticmethod
    def is_(error: BaseException, error_config: ErrorConfig) -> bool:
        return isinstance(error, AppException) and error.details.scope == error_config.scope and error.details.code == error_config.code


def should_retry_exception(exception: BaseException) -> bool:
    if isinstance(exception, AppException):
        return exception.retryable
    return True
