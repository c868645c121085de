"""
Engine configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Literal, Self

from libs.domain_types import Section


# 45 minutes per section, the standard Focus Edition timing
DEFAULT_SECTION_TIME_LIMIT_SECONDS = 45 * 60


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Application
    APP_NAME: str = "focus-engine"
    APP_VERSION: str = "0.1.0"
    ENV: Literal["development", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # Section timing. Configurable per deployment; a session copies its
    # budget when it starts, so changing settings mid-run has no effect
    # on sessions already in progress.
    SECTION_TIME_LIMITS_SECONDS: Dict[str, int] = {
        Section.QUANTITATIVE.value: DEFAULT_SECTION_TIME_LIMIT_SECONDS,
        Section.VERBAL.value: DEFAULT_SECTION_TIME_LIMIT_SECONDS,
        Section.DATA_INSIGHTS.value: DEFAULT_SECTION_TIME_LIMIT_SECONDS,
    }
    TIMER_TICK_SECONDS: float = Field(
        default=1.0,
        gt=0.0,
        description=(
            "Interval between timer ticks; each tick consumes this many seconds "
            "of budget"
        ),
    )

    # Full mock exam
    MOCK_SECTION_ORDER: List[str] = [
        Section.QUANTITATIVE.value,
        Section.VERBAL.value,
        Section.DATA_INSIGHTS.value,
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_section_time_limits(self) -> Self:
        """Validate SECTION_TIME_LIMITS_SECONDS: one positive budget per section."""
        limits = self.SECTION_TIME_LIMITS_SECONDS
        expected_sections = {s.value for s in Section}
        if set(limits.keys()) != expected_sections:
            raise ValueError(
                f"SECTION_TIME_LIMITS_SECONDS keys must be {sorted(expected_sections)}, "
                f"got {sorted(limits.keys())}"
            )
        non_positive = [k for k, v in limits.items() if v <= 0]
        if non_positive:
            raise ValueError(
                f"All section time limits must be positive, got non-positive: {non_positive}"
            )
        return self

    @model_validator(mode="after")
    def validate_mock_section_order(self) -> Self:
        """Validate MOCK_SECTION_ORDER: non-empty, known sections, no repeats."""
        order = self.MOCK_SECTION_ORDER
        if not order:
            raise ValueError("MOCK_SECTION_ORDER must not be empty")
        expected_sections = {s.value for s in Section}
        unknown = [s for s in order if s not in expected_sections]
        if unknown:
            raise ValueError(f"MOCK_SECTION_ORDER contains unknown sections: {unknown}")
        if len(set(order)) != len(order):
            raise ValueError(f"MOCK_SECTION_ORDER must not repeat sections, got {order}")
        return self

    def time_limit_for(self, section: Section) -> int:
        """Return the time budget in seconds for a section."""
        return self.SECTION_TIME_LIMITS_SECONDS[Section(section).value]

    def mock_sections(self) -> List[Section]:
        """Return MOCK_SECTION_ORDER as Section members."""
        return [Section(s) for s in self.MOCK_SECTION_ORDER]


settings = Settings()
