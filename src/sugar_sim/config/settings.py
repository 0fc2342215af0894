from __future__ import annotations

import os
from dataclasses import dataclass

from sugar_sim.utils.errors import ConfigurationError

DECISION_MODES = ("rule_based", "oracle")
TRIBE_TIE_POLICIES = ("red", "blue")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_range(name: str, default: str) -> tuple[int, int]:
    low, high = (int(part) for part in os.getenv(name, default).split(","))
    return low, high


def _env_peaks(name: str, default: str) -> tuple[tuple[int, int], ...]:
    peaks: list[tuple[int, int]] = []
    for chunk in os.getenv(name, default).split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        x, y = (int(part) for part in chunk.split(","))
        peaks.append((x, y))
    return tuple(peaks)


@dataclass(frozen=True)
class OracleSettings:
    host: str = "http://localhost:11434"
    llm_model: str = "qwen2.5:7b"
    llm_temperature: float = 0.0
    timeout_seconds: int = 120
    max_retries: int = 2
    retry_backoff_seconds: float = 1.0


@dataclass(frozen=True)
class LandscapeSettings:
    width: int = 50
    height: int = 50
    sugar_peaks: tuple[tuple[int, int], ...] = ((10, 40), (40, 10))
    max_sugar: int = 4
    dia: int = 6
    """Radius step: capacity drops by one every ``dia`` cells away from a peak."""
    growth_rate: float = 1.0
    enable_seasonality: bool = False
    season_duration: int = 20
    winter_growth_divisor: int = 4
    enable_pollution: bool = False
    pollution_production_rate: float = 1.0
    """Pollution left per unit of sugar harvested."""
    pollution_consumption_rate: float = 1.0
    """Pollution left per unit of sugar metabolised."""
    pollution_diffusion_interval: int = 10

    def __post_init__(self) -> None:
        if self.pollution_diffusion_interval < 1:
            raise ConfigurationError(
                f"pollution_diffusion_interval must be >= 1, got {self.pollution_diffusion_interval}"
            )


@dataclass(frozen=True)
class PopulationSettings:
    agent_count: int = 100
    initial_sugar_range: tuple[int, int] = (5, 25)
    metabolism_range: tuple[int, int] = (1, 4)
    vision_range: tuple[int, int] = (1, 6)
    max_age_range: tuple[int, int] = (60, 100)
    culture_tag_length: int = 11
    immunity_length: int = 32
    disease_length: int = 10
    disease_count: int = 10
    initial_infections: int = 1

    def __post_init__(self) -> None:
        if self.disease_length > self.immunity_length:
            raise ConfigurationError(
                f"disease_length ({self.disease_length}) cannot exceed "
                f"immunity_length ({self.immunity_length})"
            )


@dataclass(frozen=True)
class RuleSettings:
    """Rule toggles and parameters read by the per-tick resolvers."""

    enable_combat: bool = False
    enable_reproduction: bool = False
    enable_culture: bool = False
    enable_credit: bool = False
    enable_disease: bool = False
    enable_replacement: bool = True
    """Replace starvation/age deaths with fresh random agents (only when reproduction is off)."""

    fertility_age_range: tuple[int, int] = (18, 50)
    combat_limit: float = 50.0
    combat_retaliation_check: bool = True
    interest_rate: float = 0.10
    loan_duration: int = 10
    disease_sugar_penalty: float = 1.0
    tribe_tie: str = "blue"
    """Tribe assigned when a culture tag has as many true bits as false bits."""

    def __post_init__(self) -> None:
        if self.tribe_tie not in TRIBE_TIE_POLICIES:
            raise ConfigurationError(
                f"Unknown tribe tie policy {self.tribe_tie!r}; "
                f"expected one of {', '.join(TRIBE_TIE_POLICIES)}"
            )


@dataclass(frozen=True)
class SimulationSettings:
    ticks: int = 200
    seed: int = 42
    decision_mode: str = "rule_based"
    log_tick_interval: int = 10


@dataclass(frozen=True)
class AppSettings:
    oracle: OracleSettings
    landscape: LandscapeSettings
    population: PopulationSettings
    rules: RuleSettings
    simulation: SimulationSettings

    @staticmethod
    def defaults() -> "AppSettings":
        return AppSettings(
            oracle=OracleSettings(),
            landscape=LandscapeSettings(),
            population=PopulationSettings(),
            rules=RuleSettings(),
            simulation=SimulationSettings(),
        )

    @staticmethod
    def from_env() -> "AppSettings":
        return AppSettings(
            oracle=OracleSettings(
                host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
                llm_model=os.getenv("LLM_MODEL", "qwen2.5:7b"),
                llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0.0")),
                timeout_seconds=int(os.getenv("ORACLE_TIMEOUT_SECONDS", "120")),
                max_retries=int(os.getenv("ORACLE_MAX_RETRIES", "2")),
                retry_backoff_seconds=float(
                    os.getenv("ORACLE_RETRY_BACKOFF_SECONDS", "1.0")
                ),
            ),
            landscape=LandscapeSettings(
                width=int(os.getenv("GRID_WIDTH", "50")),
                height=int(os.getenv("GRID_HEIGHT", "50")),
                sugar_peaks=_env_peaks("SUGAR_PEAKS", "10,40;40,10"),
                max_sugar=int(os.getenv("MAX_SUGAR", "4")),
                dia=int(os.getenv("SUGAR_PEAK_DIA", "6")),
                growth_rate=float(os.getenv("GROWTH_RATE", "1.0")),
                enable_seasonality=_env_bool("ENABLE_SEASONALITY", "false"),
                season_duration=int(os.getenv("SEASON_DURATION", "20")),
                winter_growth_divisor=int(os.getenv("WINTER_GROWTH_DIVISOR", "4")),
                enable_pollution=_env_bool("ENABLE_POLLUTION", "false"),
                pollution_production_rate=float(
                    os.getenv("POLLUTION_PRODUCTION_RATE", "1.0")
                ),
                pollution_consumption_rate=float(
                    os.getenv("POLLUTION_CONSUMPTION_RATE", "1.0")
                ),
                pollution_diffusion_interval=int(
                    os.getenv("POLLUTION_DIFFUSION_INTERVAL", "10")
                ),
            ),
            population=PopulationSettings(
                agent_count=int(os.getenv("AGENT_COUNT", "100")),
                initial_sugar_range=_env_range("INITIAL_SUGAR_RANGE", "5,25"),
                metabolism_range=_env_range("METABOLISM_RANGE", "1,4"),
                vision_range=_env_range("VISION_RANGE", "1,6"),
                max_age_range=_env_range("MAX_AGE_RANGE", "60,100"),
                culture_tag_length=int(os.getenv("CULTURE_TAG_LENGTH", "11")),
                immunity_length=int(os.getenv("IMMUNITY_LENGTH", "32")),
                disease_length=int(os.getenv("DISEASE_LENGTH", "10")),
                disease_count=int(os.getenv("DISEASE_COUNT", "10")),
                initial_infections=int(os.getenv("INITIAL_INFECTIONS", "1")),
            ),
            rules=RuleSettings(
                enable_combat=_env_bool("ENABLE_COMBAT", "false"),
                enable_reproduction=_env_bool("ENABLE_REPRODUCTION", "false"),
                enable_culture=_env_bool("ENABLE_CULTURE", "false"),
                enable_credit=_env_bool("ENABLE_CREDIT", "false"),
                enable_disease=_env_bool("ENABLE_DISEASE", "false"),
                enable_replacement=_env_bool("ENABLE_REPLACEMENT", "true"),
                fertility_age_range=_env_range("FERTILITY_AGE_RANGE", "18,50"),
                combat_limit=float(os.getenv("COMBAT_LIMIT", "50")),
                combat_retaliation_check=_env_bool("COMBAT_RETALIATION_CHECK", "true"),
                interest_rate=float(os.getenv("INTEREST_RATE", "0.10")),
                loan_duration=int(os.getenv("LOAN_DURATION", "10")),
                disease_sugar_penalty=float(os.getenv("DISEASE_SUGAR_PENALTY", "1.0")),
                tribe_tie=os.getenv("TRIBE_TIE", "blue").strip().lower(),
            ),
            simulation=SimulationSettings(
                ticks=int(os.getenv("TICKS", "200")),
                seed=int(os.getenv("SEED", "42")),
                decision_mode=os.getenv("DECISION_MODE", "rule_based").strip().lower(),
                log_tick_interval=int(os.getenv("LOG_TICK_INTERVAL", "10")),
            ),
        )
