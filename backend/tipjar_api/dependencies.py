from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.service_container import Services
from tipjar_api.services.creator_session import CreatorSession
from tipjar_api.services.donation_service import DonationService
from tipjar_api.services.donation_stats_service import DonationStatsService
from tipjar_api.services.goal_service import GoalService
from tipjar_api.services.onboarding_service import OnboardingService
from tipjar_api.services.payment_completion import PaymentCompletionBookkeeper
from tipjar_api.services.payment_confirmation_service import PaymentConfirmationService
from tipjar_api.services.payout_service import PayoutService
from tipjar_api.services.phone_verifier import PhoneVerifier
from tipjar_api.services.profile_service import ProfileService
from tipjar_api.services.stripe_service import StripeService
from tipjar_api.services.verification_service import VerificationService
from tipjar_api.services.webhook_service import WebhookService
from tipjar_common.core.app_error import AppException
from tipjar_common.core.config_service import ConfigService
from tipjar_common.core.jwt_utils import TokenData
from tipjar_common.core.request_context import RequestContext
from tipjar_common.core.service_factory import get_jwt_validator
from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.payout import BankAccountDAO, PayoutDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.crud.verification import PersonalDataDAO, VerificationDAO
from tipjar_db.db import AsyncSessionLocal
from tipjar_db.models.enums import ProfileRole
from tipjar_db.schemas.profile import ProfileResponse

logger = get_logger()
services = Services.instance()

# Security scheme
security = HTTPBearer()


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Dependency for async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_config_service() -> ConfigService:
    return services.config_service


def get_profile_dao() -> ProfileDAO:
    """Dependency for ProfileDAO instance."""
    return services.profile_dao


def get_payment_dao() -> PaymentDAO:
    """Dependency for PaymentDAO instance."""
    return services.payment_dao


def get_payout_dao() -> PayoutDAO:
    return services.payout_dao


def get_bank_account_dao() -> BankAccountDAO:
    return services.bank_account_dao


def get_goal_dao() -> GoalDAO:
    return services.goal_dao


def get_verification_dao() -> VerificationDAO:
    return services.verification_dao


def get_personal_data_dao() -> PersonalDataDAO:
    return services.personal_data_dao


def get_stripe_service() -> StripeService:
    """Dependency for the process-wide StripeService."""
    return services.stripe_service


def get_completion_bookkeeper() -> PaymentCompletionBookkeeper:
    return services.completion_bookkeeper


def get_payment_confirmation_service() -> PaymentConfirmationService:
    """Singleton: it holds the in-flight payment intent guard."""
    return services.payment_confirmation_service


def get_phone_verifier() -> PhoneVerifier:
    return services.phone_verifier


def get_profile_service(
    profile_dao: ProfileDAO = Depends(get_profile_dao),
    goal_dao: GoalDAO = Depends(get_goal_dao),
) -> ProfileService:
    """Dependency for ProfileService instance."""
    return ProfileService(profile_dao, goal_dao)


def get_donation_service(
    profile_dao: ProfileDAO = Depends(get_profile_dao),
    payment_dao: PaymentDAO = Depends(get_payment_dao),
    stripe_service: StripeService = Depends(get_stripe_service),
    config_service: ConfigService = Depends(get_config_service),
) -> DonationService:
    """Dependency for DonationService instance."""
    return DonationService(profile_dao, payment_dao, stripe_service, config_service)


def get_webhook_service(
    stripe_service: StripeService = Depends(get_stripe_service),
    payment_dao: PaymentDAO = Depends(get_payment_dao),
    bookkeeper: PaymentCompletionBookkeeper = Depends(get_completion_bookkeeper),
    confirmation_service: PaymentConfirmationService = Depends(get_payment_confirmation_service),
) -> WebhookService:
    """Dependency for WebhookService instance."""
    return WebhookService(stripe_service, payment_dao, bookkeeper, confirmation_service)


def get_donation_stats_service(
    profile_dao: ProfileDAO = Depends(get_profile_dao),
    payment_dao: PaymentDAO = Depends(get_payment_dao),
) -> DonationStatsService:
    return DonationStatsService(profile_dao, payment_dao)


def get_payout_service(
    payout_dao: PayoutDAO = Depends(get_payout_dao),
    bank_account_dao: BankAccountDAO = Depends(get_bank_account_dao),
    verification_dao: VerificationDAO = Depends(get_verification_dao),
    config_service: ConfigService = Depends(get_config_service),
) -> PayoutService:
    return PayoutService(payout_dao, bank_account_dao, verification_dao, config_service)


def get_goal_service(goal_dao: GoalDAO = Depends(get_goal_dao)) -> GoalService:
    return GoalService(goal_dao)


def get_verification_service(
    verification_dao: VerificationDAO = Depends(get_verification_dao),
    profile_dao: ProfileDAO = Depends(get_profile_dao),
) -> VerificationService:
    return VerificationService(verification_dao, profile_dao)


def get_onboarding_service(
    profile_dao: ProfileDAO = Depends(get_profile_dao),
    personal_data_dao: PersonalDataDAO = Depends(get_personal_data_dao),
    verification_dao: VerificationDAO = Depends(get_verification_dao),
    payout_service: PayoutService = Depends(get_payout_service),
    phone_verifier: PhoneVerifier = Depends(get_phone_verifier),
) -> OnboardingService:
    """Dependency for OnboardingService instance."""
    return OnboardingService(profile_dao, personal_data_dao, verification_dao, payout_service, phone_verifier)


async def get_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TokenData:
    """Dependency to get the caller's identity from the hosted auth JWT."""
    try:
        token_data = get_jwt_validator().validate_token(credentials.credentials)
    except AppException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    request_context = RequestContext.get_or_none()
    if request_context is not None:
        request_context.user_id = token_data.user_id
    return token_data


async def get_current_creator(
    token_data: TokenData = Depends(get_current_token),
    db: AsyncSession = Depends(get_db),
    profile_service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Dependency to get the caller's profile, created on first authentication."""
    return await profile_service.ensure_profile(db, token_data)


async def get_current_admin(current_creator: ProfileResponse = Depends(get_current_creator)) -> ProfileResponse:
    """Dependency to get current admin profile."""
    if current_creator.role != ProfileRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    return current_creator


async def get_creator_session(
    current_creator: ProfileResponse = Depends(get_current_creator),
    db: AsyncSession = Depends(get_db),
    profile_dao: ProfileDAO = Depends(get_profile_dao),
    payment_dao: PaymentDAO = Depends(get_payment_dao),
    payout_dao: PayoutDAO = Depends(get_payout_dao),
) -> CreatorSession:
    """One CreatorSession per request, shared by every service handling it."""
    return CreatorSession(db, current_creator, profile_dao=profile_dao, payment_dao=payment_dao, payout_dao=payout_dao)


async def require_onboarding_completed(
    session: CreatorSession = Depends(get_creator_session),
    onboarding_service: OnboardingService = Depends(get_onboarding_service),
) -> CreatorSession:
    """Dashboard endpoints are only available once onboarding is completed."""
    await onboarding_service.require_completed(session.db, await session.profile())
    return session
