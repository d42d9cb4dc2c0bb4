"""
Application settings and configuration management.
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./qrfeedback.db"

    # JWT Configuration
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24

    # Razorpay Configuration
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    razorpay_plan_id: str = ""
    razorpay_api_base: str = "https://api.razorpay.com/v1"

    # Billing Configuration
    billing_mode: str = "mock"  # "mock" or "live"
    subscription_total_count: int = 12
    subscription_customer_notify: bool = True
    subscription_dedup_window_seconds: int = 300  # 5 minutes
    gateway_timeout_seconds: int = 15

    # Plan template used by the admin create-plan endpoint
    plan_name: str = "Pro Subscription"
    plan_description: str = "Monthly Pro Plan"
    plan_amount: int = 199900  # paise
    plan_currency: str = "INR"
    plan_period: str = "monthly"
    plan_interval: int = 1

    # Application Settings
    environment: str = "development"

    # CORS Settings
    allowed_origins: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    # Monitoring
    enable_metrics: bool = True

    @field_validator("allowed_origins")
    def validate_origins(cls, v):
        """Convert comma-separated origins string to list."""
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("billing_mode")
    def validate_billing_mode(cls, v):
        mode = v.lower().strip()
        if mode not in ("mock", "live"):
            raise ValueError("billing_mode must be 'mock' or 'live'")
        return mode

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def validate_production_config(self) -> List[str]:
        """Validate production configuration and return list of issues."""
        issues = []

        if self.is_production:
            if self.billing_mode == "mock":
                issues.append("Billing mode should be 'live' in production")

            if not self.razorpay_webhook_secret:
                issues.append("Razorpay webhook secret must be set in production")

            if not self.razorpay_plan_id:
                issues.append("Razorpay plan id must be set in production")

            if self.jwt_secret == "change-me-in-production":
                issues.append("JWT secret must be changed from default value")

            if "localhost" in str(self.allowed_origins):
                issues.append("Localhost origins should be removed in production")

        return issues

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
