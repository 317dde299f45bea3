# config.py
# ============================================================================
# ELORA CHECKOUT BACKEND - CONFIGURATION
# ============================================================================
# Everything the service reads from the environment, collected in one place.
# Missing gateway credentials do not prevent startup; checkout answers 500
# until they are provided. Missing mail credentials only disable emails.
# ============================================================================

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv


TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUTHY


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class ShopConfig:
    """Runtime configuration for the checkout backend."""

    # Comgate
    comgate_merchant: Optional[str] = None
    comgate_secret: Optional[str] = None
    comgate_test: bool = False
    comgate_base_url: str = "https://payments.comgate.cz/v1.0"
    comgate_timeout_seconds: float = 15.0

    # Storefront return links
    public_base_url: str = "https://www.elorajewelry.cz"
    return_path_paid: str = "/payment-success"
    return_path_cancelled: str = "/payment-failed"
    return_path_pending: str = "/payment-failed"

    # Mail
    owner_email: Optional[str] = None
    resend_api_key: Optional[str] = None
    mail_from: str = "ELORA <objednavky@elorajewelry.cz>"
    mail_timeout_seconds: float = 10.0

    # Payment constants
    currency: str = "CZK"
    payment_label: str = "ELORA"
    payment_method: str = "ALL"
    payment_country: str = "CZ"
    payment_lang: str = "cs"
    payment_category: str = "PHYSICAL_GOODS_ONLY"
    ref_prefix: str = "elora"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    env: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def has_gateway_credentials(self) -> bool:
        return bool(self.comgate_merchant and self.comgate_secret)

    @property
    def has_mail_credentials(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def debug(self) -> bool:
        return self.env == "development"

    @classmethod
    def load(cls, dotenv_path: Optional[str] = None) -> "ShopConfig":
        """Read a .env file (process variables win over it), then the environment."""
        load_dotenv(dotenv_path, override=False)
        return cls.from_env()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ShopConfig":
        env = os.environ if environ is None else environ
        defaults = cls()
        origins = env.get("CORS_ORIGINS", "*")
        return cls(
            comgate_merchant=_optional(env.get("COMGATE_MERCHANT")),
            comgate_secret=_optional(env.get("COMGATE_SECRET")),
            comgate_test=_flag(env.get("COMGATE_TEST")),
            comgate_base_url=env.get("COMGATE_BASE_URL", defaults.comgate_base_url).rstrip("/"),
            comgate_timeout_seconds=float(env.get("COMGATE_TIMEOUT", defaults.comgate_timeout_seconds)),
            public_base_url=env.get("PUBLIC_BASE_URL", defaults.public_base_url).rstrip("/"),
            return_path_paid=env.get("RETURN_PATH_PAID", defaults.return_path_paid),
            return_path_cancelled=env.get("RETURN_PATH_CANCELLED", defaults.return_path_cancelled),
            return_path_pending=env.get("RETURN_PATH_PENDING", defaults.return_path_pending),
            owner_email=_optional(env.get("OWNER_EMAIL")),
            resend_api_key=_optional(env.get("RESEND_API_KEY")),
            mail_from=env.get("MAIL_FROM", defaults.mail_from),
            mail_timeout_seconds=float(env.get("MAIL_TIMEOUT", defaults.mail_timeout_seconds)),
            host=env.get("HOST", defaults.host),
            port=int(env.get("PORT", defaults.port)),
            env=env.get("ENV", defaults.env),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
        )
