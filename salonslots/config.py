"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Literal, Optional, Sequence

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import EXCLUDED_STATUSES, ServiceItem, TimeOfDay
from .domain.time_grid import TimeGrid


class GridConfig(BaseModel):
    """Slot grid of a business day."""
    day_start: str = "09:00"
    day_end: str = "23:30"  # start of the last slot
    slot_minutes: int = 30

    @field_validator("day_start", "day_end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Normalize to HH:MM."""
        return str(TimeOfDay.parse(value))

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("slot_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> "GridConfig":
        """Ensure the day opens before its last slot and ends on a slot boundary."""
        start = TimeOfDay.parse(self.day_start).minutes
        end = TimeOfDay.parse(self.day_end).minutes
        if end < start:
            raise ValueError("day_end must not be earlier than day_start")
        if (end - start) % self.slot_minutes:
            raise ValueError("day_end must lie on a slot boundary from day_start")
        return self

    def to_grid(self) -> TimeGrid:
        return TimeGrid(
            day_start=TimeOfDay.parse(self.day_start),
            day_end=TimeOfDay.parse(self.day_end),
            slot_minutes=self.slot_minutes,
        )


class StaffMember(BaseModel):
    """Staff member that can be booked."""
    id: str
    name: str  # Used as alias

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value) -> str:
        return str(value)


class ServiceConfig(BaseModel):
    """Salon service with its intrinsic duration."""
    id: str
    name: str
    duration_minutes: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value) -> str:
        return str(value)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    def to_item(self) -> ServiceItem:
        return ServiceItem(service_id=self.id, name=self.name, duration_minutes=self.duration_minutes)


class StoreConfig(BaseModel):
    """Where availability and appointments live."""
    backend: Literal["memory", "rest"] = "memory"
    data_file: Optional[Path] = None  # memory backend: JSON snapshot to load and write back
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = 30

    @model_validator(mode="after")
    def validate_backend(self) -> "StoreConfig":
        if self.backend == "rest" and not (self.url and self.api_key):
            raise ValueError("The rest backend needs both url and api_key")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    grid: GridConfig = Field(default_factory=GridConfig)
    default_service_minutes: int = 30
    timezone: Optional[str] = None  # None = local time of the machine
    excluded_statuses: List[str] = Field(default_factory=lambda: sorted(EXCLUDED_STATUSES))
    staff: List[StaffMember] = Field(default_factory=list)
    services: List[ServiceConfig] = Field(default_factory=list)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("default_service_minutes")
    @classmethod
    def validate_default_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_service_minutes must be greater than zero")
        return value

    @field_validator("staff")
    @classmethod
    def validate_staff(cls, value: List[StaffMember]) -> List[StaffMember]:
        """Ensure staff ids and names are unique."""
        seen_ids: set[str] = set()
        seen_names: set[str] = set()
        for member in value:
            name_key = member.name.lower()
            if member.id in seen_ids:
                raise ValueError(f"Duplicate staff id detected: {member.id}")
            if name_key in seen_names:
                raise ValueError(f"Duplicate staff name detected: {member.name}")
            seen_ids.add(member.id)
            seen_names.add(name_key)
        return value

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceConfig]) -> List[ServiceConfig]:
        """Ensure service ids and names are unique."""
        seen_ids: set[str] = set()
        seen_names: set[str] = set()
        for service in value:
            name_key = service.name.lower()
            if service.id in seen_ids or name_key in seen_names:
                raise ValueError(f"Duplicate service detected: {service.name}")
            seen_ids.add(service.id)
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative data files are resolved against the config file's directory
        data_file = config.store.data_file
        if data_file is not None and not data_file.is_absolute():
            config.store.data_file = config_path.parent / data_file

        return config

    def find_staff(self, identifier: str) -> StaffMember | None:
        """Find a staff member by id or name (case-insensitive)."""
        for member in self.staff:
            if member.id == identifier or member.name.lower() == identifier.lower():
                return member
        return None

    def resolve_staff_id(self, identifier: str) -> str:
        """
        Resolve a staff identifier (id or name) to a staff id.

        Unknown identifiers are passed through when no staff list is
        configured, so the store can be queried by raw id.

        Raises:
            ValueError: If a staff list exists and the identifier is not in it
        """
        member = self.find_staff(identifier)
        if member:
            return member.id
        if not self.staff:
            return identifier

        raise ValueError(
            f"Unknown staff member: '{identifier}'. "
            f"Use a configured staff id or name."
        )

    def find_service(self, identifier: str) -> ServiceConfig | None:
        """Find a service by id or name (case-insensitive)."""
        for service in self.services:
            if service.id == identifier or service.name.lower() == identifier.lower():
                return service
        return None

    def resolve_services(self, identifiers: Sequence[str]) -> List[ServiceItem]:
        """
        Resolve service identifiers to service items.

        Raises:
            ValueError: If any identifier is unknown
        """
        items: List[ServiceItem] = []
        unknown: List[str] = []

        for identifier in identifiers:
            service = self.find_service(identifier)
            if service is None:
                unknown.append(identifier)
                continue
            items.append(service.to_item())

        if unknown:
            missing = ", ".join(sorted(set(unknown)))
            raise ValueError(
                f"Unknown service(s): {missing}. "
                "Ensure they exist in the configuration."
            )

        return items


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
