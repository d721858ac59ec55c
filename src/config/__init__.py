"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="compliance-tracker", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/compliance",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Authentication ==========
    jwt_secret: str = Field(default="default_secret", description="HMAC secret for access tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expires_minutes: int = Field(
        default=7 * 24 * 60,
        description="Access token lifetime in minutes",
        ge=1
    )

    # ========== SLA Scanner ==========
    sla_scan_enabled: bool = Field(default=True, description="Run the background SLA scanner")
    sla_scan_interval_seconds: int = Field(
        default=300,
        description="Seconds between SLA breach scans",
        ge=10
    )
    sla_default_days: int = Field(
        default=7,
        description="Default SLA duration for new organizations",
        ge=1
    )

    # ========== AI Summaries (Groq, OpenAI-compatible) ==========
    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible base URL for Groq"
    )
    llm_model: str = Field(default="llama-3.1-8b-instant", description="Summary model")
    llm_timeout_seconds: float = Field(
        default=20.0,
        description="Upper bound for one summary generation call",
        gt=0,
        le=120
    )
    llm_temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    llm_max_tokens: int = Field(default=1000, ge=1, le=8000)
    mock_llm: bool = Field(
        default=False,
        description="Use the deterministic mock summary (no API calls)"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    # ========== Demo data ==========
    seed_demo_data: bool = Field(default=False, description="Create the demo tenant on startup")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Role(str, Enum):
    """User roles, most privileged first."""
    ADMIN = "Admin"
    MANAGER = "Manager"
    REVIEWER = "Reviewer"
    USER = "User"


class IssueCategory(str, Enum):
    """Compliance issue categories."""
    QUALITY = "Quality"
    SAFETY = "Safety"
    REGULATORY = "Regulatory"
    ENVIRONMENTAL = "Environmental"
    OPERATIONAL = "Operational"
    OTHER = "Other"


class IssuePriority(str, Enum):
    """Compliance issue priorities."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Industry(str, Enum):
    """Industry of a registered organization."""
    PHARMA = "Pharma"
    MEDTECH = "MedTech"
    MANUFACTURING = "Manufacturing"
    OTHER = "Other"


class AuditAction(str, Enum):
    """Kinds of recorded state changes."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNMENT = "ASSIGNMENT"
    WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
    AI_SUMMARY_GENERATED = "AI_SUMMARY_GENERATED"
    SLA_BREACH = "SLA_BREACH"
    LOGIN = "LOGIN"
    REGISTER = "REGISTER"


class EntityType(str, Enum):
    """Kinds of audited entities."""
    ISSUE = "Issue"
    WORKFLOW = "Workflow"
    USER = "User"
    ORGANIZATION = "Organization"


class NotificationEvent(str, Enum):
    """Events broadcast to tenant rooms."""
    ISSUE_CREATED = "issue:created"
    ISSUE_UPDATED = "issue:updated"
    ISSUE_TRANSITIONED = "issue:transitioned"
    ISSUE_DELETED = "issue:deleted"
    SLA_BREACH = "sla:breach"


# ========== Bootstrap workflow ==========

# Used for initial-state lookup when a tenant has no active default workflow.
BOOTSTRAP_INITIAL_STATE = "Draft"
BOOTSTRAP_STATES = ["Draft", "Submitted", "Under Review", "Approved", "Rejected", "Closed"]
BOOTSTRAP_FINAL_STATES = ["Closed", "Rejected"]
DEFAULT_WORKFLOW_NAME = "Default Compliance Workflow"

MOCK_SUMMARY_MODEL = "groq-mock-engine"


# ========== Lists for validation ==========

VALID_ROLES = [role.value for role in Role]
VALID_CATEGORIES = [category.value for category in IssueCategory]
VALID_PRIORITIES = [priority.value for priority in IssuePriority]
VALID_INDUSTRIES = [industry.value for industry in Industry]
