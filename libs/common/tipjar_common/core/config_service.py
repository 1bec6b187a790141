"""Configuration service for the backend application.
Loads configuration from environment variables, AWS Secrets Manager, and secrets file.
"""

import logging
import os
from pathlib import Path
from typing import Any, cast

import boto3
import yaml
from botocore.exceptions import ClientError, NoCredentialsError
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOCAL_ENVIRONMENTS = ("local", "test", "testing")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t")


class StripeSection(BaseModel):
    secret_key: str = ""
    publishable_key: str = ""
    webhook_secret: str = ""
    api_base_url: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)


class AuthSection(BaseModel):
    """Hosted auth service token settings."""

    jwt_secret: str = ""
    jwt_audience: str = "authenticated"
    jwks_url: str = ""
    algorithm: str = "HS256"


class DonationSection(BaseModel):
    currency: str = "PLN"
    min_amount: int = 100
    min_payout_amount: int = 1000
    phone_otp_code: str = "1234"
    otp_resend_seconds: int = 60


class ConfigService:
    """Service for loading and accessing application configuration.
    Combines environment variables, AWS Secrets Manager, and secrets from YAML file.
    """

    stripe: StripeSection
    auth: AuthSection
    donations: DonationSection

    def __init__(self) -> None:
        self._config: dict[str, Any] = {}
        self._secrets: dict[str, Any] = {}
        self._aws_secrets: dict[str, Any] = {}

        self._env = os.getenv("APP_ENV", "local")

        self._load_env_file()
        self._load_env_vars()
        self._load_aws_secrets()
        self._load_secrets()

        # Priority: secrets > environment variables > defaults
        self.stripe = StripeSection(
            secret_key=str(self.get("stripe.secret_key") or os.getenv("STRIPE_SECRET_KEY", "")),
            publishable_key=str(self.get("stripe.publishable_key") or os.getenv("STRIPE_PUBLISHABLE_KEY", "")),
            webhook_secret=str(self.get("stripe.webhook_secret") or os.getenv("STRIPE_WEBHOOK_SECRET", "")),
            api_base_url=str(self.get("stripe.api_base_url") or os.getenv("STRIPE_API_BASE_URL", "")),
        )

        supabase_url = str(self.get("auth.url") or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.auth = AuthSection(
            jwt_secret=str(self.get("auth.jwt_secret") or os.getenv("SUPABASE_JWT_SECRET", "")),
            jwt_audience=str(self.get("auth.jwt_audience") or os.getenv("AUTH_JWT_AUDIENCE", "authenticated")),
            jwks_url=f"{supabase_url}/auth/v1/.well-known/jwks.json" if supabase_url else "",
            algorithm=str(self.get("auth.algorithm") or os.getenv("AUTH_JWT_ALGORITHM", "HS256")),
        )

        self.donations = DonationSection(
            currency=str(self.get("donations.currency") or "PLN"),
            min_amount=int(self.get("donations.min_amount") or 100),
            min_payout_amount=int(self.get("donations.min_payout_amount") or 1000),
            phone_otp_code=str(self.get("donations.phone_otp_code") or "1234"),
            otp_resend_seconds=int(self.get("donations.otp_resend_seconds") or 60),
        )

    def _load_env_file(self) -> None:
        """Load the appropriate .env file based on environment"""
        base_dir = Path(__file__).resolve().parent.parent.parent

        env_files_to_try: list[Path] = []
        if self._env == "local":
            env_files_to_try.append(base_dir / ".env.local")
        else:
            env_files_to_try.append(base_dir / f".env.{self._env}")
        env_files_to_try.append(base_dir / ".env")

        for env_file in env_files_to_try:
            if env_file.exists():
                logger.info(f"Loading environment from {env_file}")
                _ = load_dotenv(env_file)
                return

        logger.warning("No environment file found. Using default values.")

    def _load_env_vars(self) -> None:
        """Load configuration from environment variables"""
        self._config = {
            "app_env": self._env,
            "debug": _env_flag("DEBUG", "True"),
            "api_prefix": os.getenv("API_PREFIX", "/api/v1"),
            "project_name": os.getenv("PROJECT_NAME", "Tipjar"),
            "cors_origins": os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(","),
            "frontend_url": os.getenv("FRONTEND_URL", "http://localhost:5173"),
            "port": int(os.getenv("PORT", "3001")),
            "host": os.getenv("HOST", "0.0.0.0"),
            # Logging configuration
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "log_json_format": _env_flag("LOG_JSON_FORMAT", "False"),
            "log_json_pretty": _env_flag("LOG_JSON_PRETTY", "False"),
            "log_console_output": _env_flag("LOG_CONSOLE_OUTPUT", "True"),
            "log_file_output": _env_flag("LOG_FILE_OUTPUT", "False"),
            "log_file_path": os.getenv("LOG_FILE_PATH", "logs/app.log"),
            "log_rotation": os.getenv("LOG_ROTATION", "20 MB"),
            "log_retention": os.getenv("LOG_RETENTION", "1 week"),
            "log_compression": os.getenv("LOG_COMPRESSION", "zip"),
            # Donation rules (non-secret)
            "donations.currency": os.getenv("DONATION_CURRENCY", "PLN"),
            "donations.phone_otp_code": os.getenv("PHONE_OTP_CODE", "1234"),
        }

    def _load_aws_secrets(self) -> None:
        """Load secrets from AWS Secrets Manager if configured"""
        if self._env in _LOCAL_ENVIRONMENTS:
            logger.info(f"Local environment detected (APP_ENV={self._env}). Skipping AWS Secrets Manager.")
            return

        if os.getenv("USE_AWS_SECRET_MANAGER", "true").lower() != "true":
            logger.info("AWS Secrets Manager disabled (USE_AWS_SECRET_MANAGER=false). Skipping AWS Secrets Manager.")
            return

        secret_name = os.getenv("AWS_SECRETS_MANAGER_SECRET_NAME")
        if not secret_name:
            secret_name = "prod_secret" if self._env == "production" else f"{self._env}_secret"

        try:
            region_name = os.getenv("AWS_DEFAULT_REGION", "eu-central-1")
            session = boto3.Session()
            client = session.client(  # type: ignore[misc]
                service_name="secretsmanager",
                region_name=region_name,
            )

            logger.info(f"Loading secrets from AWS Secrets Manager: {secret_name}")

            response: dict[str, Any] = client.get_secret_value(SecretId=secret_name)  # type: ignore[assignment]
            secret_string = cast(str, response["SecretString"])

            # Same format as local secrets.yaml
            secrets_data: Any = yaml.safe_load(secret_string)
            self._aws_secrets = cast(dict[str, Any], secrets_data) if secrets_data else {}
            logger.info("Successfully loaded secrets from AWS Secrets Manager")

        except NoCredentialsError:
            logger.exception("AWS credentials not found. Cannot load secrets from AWS Secrets Manager.")
        except ClientError as e:
            error_response: dict[str, Any] = cast(dict[str, Any], e.response)
            error_code = error_response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ResourceNotFoundException":
                logger.exception(f"The requested secret {secret_name} was not found.")
            elif error_code == "DecryptionFailureException":
                logger.exception("Secrets Manager can't decrypt the protected secret text using the provided KMS key.")
            else:
                logger.exception(f"Error loading secrets from AWS Secrets Manager: {error_code}")
        except yaml.YAMLError:
            logger.exception("Failed to parse secrets from AWS Secrets Manager. Expected YAML format.")

    def _load_secrets(self) -> None:
        """Load secrets from YAML file"""
        base_dir = Path(__file__).resolve().parent.parent.parent
        secrets_files_to_try: list[Path] = [base_dir / "secrets.yaml", base_dir / f"secrets.{self._env}.yaml"]

        secrets_file = next((path for path in secrets_files_to_try if path.exists()), None)
        if secrets_file is None:
            logger.warning("No secrets file found. Using default values.")
            self._secrets = {}
            return

        try:
            with open(secrets_file) as f:
                self._secrets = yaml.safe_load(f) or {}
            logger.info(f"Loaded secrets from {secrets_file}")
        except (OSError, yaml.YAMLError):
            logger.exception(f"Error loading secrets file {secrets_file}")
            self._secrets = {}

    @staticmethod
    def _lookup(source: dict[str, Any], key: str) -> tuple[bool, Any]:
        value: Any = source
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = cast("Any", value[part])
            else:
                return False, None
        return True, value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key.
        Priority order:
        1. Environment variables (from _config dict)
        2. AWS Secrets Manager
        3. Local secrets file
        4. Direct environment variable lookup (os.getenv)
        5. Default value
        """
        if key in self._config:
            return self._config[key]

        for source in (self._aws_secrets, self._secrets):
            if source:
                found, value = self._lookup(source, key)
                if found:
                    return value

        env_value = os.getenv(key)
        if env_value is not None:
            return env_value

        return default

    def get_database_url(self) -> str:
        """Get database URL from secrets or construct it from components.
        Priority:
        1. Full URL from environment (prioritized in test mode)
        2. Full URL from AWS Secrets Manager
        3. Full URL from local secrets
        4. Constructed from components
        """
        if self.is_testing():
            db_url = os.getenv("DATABASE_URL")
            if db_url:
                return db_url

        for source in (self._aws_secrets, self._secrets):
            found, value = self._lookup(source, "database.url")
            if found and value:
                return str(value)

        db_url = os.getenv("DATABASE_URL")
        if db_url:
            return db_url

        username = self.get("database.username", "postgres")
        password = self.get("database.password", "postgres")
        host = self.get("database.host", "localhost")
        port = self.get("database.port", 5432)
        name = self.get("database.name", "tipjar")

        return f"postgresql://{username}:{password}@{host}:{port}/{name}"

    def is_testing(self) -> bool:
        """Check if the application is running in test mode"""
        return self._env.lower() in ("test", "testing")

    def get_environment(self) -> str:
        """Get the current environment name"""
        return self._env


config_service = ConfigService()


def get_env_file_path() -> str:
    base_dir = Path(__file__).resolve().parent.parent.parent
    env = os.getenv("APP_ENV", "local")

    for env_file in (base_dir / f".env.{env}", base_dir / ".env"):
        if env_file.exists():
            logger.info(f"Using environment file: {env_file}")
            return str(env_file)

    logger.warning("No environment file found. Using default values.")
    return ""


class Settings(BaseSettings):
    """Application settings that loads from environment variables and secrets file"""

    model_config = SettingsConfigDict(
        env_file=get_env_file_path() or None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    API_V1_STR: str = config_service.get("api_prefix", "/api/v1")
    PROJECT_NAME: str = config_service.get("project_name", "Tipjar")

    CORS_ORIGINS: str = ",".join(config_service.get("cors_origins", ["http://localhost:5173"]))
    FRONTEND_URL: str = config_service.get("frontend_url", "http://localhost:5173")

    DATABASE_URL: str = config_service.get_database_url()

    DEBUG: bool = config_service.get("debug", True)
    LOG_LEVEL: str = config_service.get("log_level", "info")

    @property
    def BACKEND_CORS_ORIGINS(self) -> list[str]:
        """Returns the CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
