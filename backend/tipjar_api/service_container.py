from __future__ import annotations

from tipjar_api.services.payment_completion import PaymentCompletionBookkeeper
from tipjar_api.services.payment_confirmation_service import PaymentConfirmationService
from tipjar_api.services.phone_verifier import PhoneVerifier
from tipjar_api.services.stripe_service import StripeService
from tipjar_common.core.config_service import ConfigService
from tipjar_common.core.lifecycle import Lifecycle
from tipjar_common.core.service_factory import get_phone_verifier
from tipjar_common.utils.utils import cached_classmethod, get_logger
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.payout import BankAccountDAO, PayoutDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.crud.verification import PersonalDataDAO, VerificationDAO

logger = get_logger()


class Services(Lifecycle):
    """Process-wide singletons. Request-scoped services are built in ``tipjar_api.dependencies``."""

    config_service: ConfigService

    profile_dao: ProfileDAO
    payment_dao: PaymentDAO
    bank_account_dao: BankAccountDAO
    payout_dao: PayoutDAO
    goal_dao: GoalDAO
    verification_dao: VerificationDAO
    personal_data_dao: PersonalDataDAO

    stripe_service: StripeService
    completion_bookkeeper: PaymentCompletionBookkeeper
    payment_confirmation_service: PaymentConfirmationService
    phone_verifier: PhoneVerifier

    def __init__(self) -> None:
        super().__init__()

        self.config_service = self._create_config_service()

        # Initialize database access objects
        self.profile_dao = ProfileDAO()
        self.payment_dao = PaymentDAO()
        self.bank_account_dao = BankAccountDAO()
        self.payout_dao = PayoutDAO()
        self.goal_dao = GoalDAO()
        self.verification_dao = VerificationDAO()
        self.personal_data_dao = PersonalDataDAO()

        # Initialize payment services
        self.stripe_service = self._create_stripe_service(config_service=self.config_service)
        self.completion_bookkeeper = self._create_completion_bookkeeper(profile_dao=self.profile_dao, goal_dao=self.goal_dao)
        # Holds the in-flight intent guard, so it must outlive a single request
        self.payment_confirmation_service = self._create_payment_confirmation_service(
            payment_dao=self.payment_dao,
            stripe_service=self.stripe_service,
            bookkeeper=self.completion_bookkeeper,
            config_service=self.config_service,
        )

        self.phone_verifier = self._create_phone_verifier()

    async def _start(self) -> None:
        logger.info(
            "Services started",
            environment=self.config_service.get_environment(),
            processor_configured=self.stripe_service.is_configured,
            phone_verifier=type(self.phone_verifier).__name__,
        )

    async def _stop(self) -> None:
        pass

    # Protected creation methods for dependency injection/overriding
    def _create_config_service(self) -> ConfigService:
        return ConfigService()

    def _create_stripe_service(self, config_service: ConfigService) -> StripeService:
        return StripeService(config_service)

    def _create_completion_bookkeeper(self, profile_dao: ProfileDAO, goal_dao: GoalDAO) -> PaymentCompletionBookkeeper:
        return PaymentCompletionBookkeeper(profile_dao, goal_dao)

    def _create_payment_confirmation_service(
        self,
        payment_dao: PaymentDAO,
        stripe_service: StripeService,
        bookkeeper: PaymentCompletionBookkeeper,
        config_service: ConfigService,
    ) -> PaymentConfirmationService:
        return PaymentConfirmationService(payment_dao, stripe_service, bookkeeper, config_service)

    def _create_phone_verifier(self) -> PhoneVerifier:
        return get_phone_verifier()

    @cached_classmethod
    def instance(cls) -> Services:
        return cls()
