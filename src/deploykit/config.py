"""Application settings and deploy profile contract."""

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from deploykit.errors import ConfigError

RestartMode = Literal["startOrReload", "reboot"]

RESTART_MODES: tuple[RestartMode, ...] = ("startOrReload", "reboot")
PROFILES_FILENAME = "profiles.json"
DEFAULT_BUILD_DIR = ".output"
DEFAULT_RESTART_MODE: RestartMode = "startOrReload"
PROFILE_FILE_ERROR_MESSAGE = (
    "profiles.json is missing, invalid, or empty; expected at least one deploy profile"
)
REQUIRED_PROFILE_FIELDS = ("sshConnectionString", "remoteDir", "env", "pm2AppName")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="WARNING")
    log_json: int = Field(alias="LOG_JSON", default=0)
    deploy_profiles_path: str = Field(alias="DEPLOY_PROFILES_PATH", default="")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


class Profile(BaseModel):
    """One entry of profiles.json, as written by the user.

    Field values are validated lazily by ``ProfileCatalog.resolve`` so that a
    broken profile only fails the runs that select it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    ssh_connection_string: str | None = Field(default=None, alias="sshConnectionString")
    remote_dir: str | None = Field(default=None, alias="remoteDir")
    env: str | None = None
    pm2_app_name: str | None = Field(default=None, alias="pm2AppName")
    build_dir: str | None = Field(default=None, alias="buildDir")
    pm2_restart_mode: str | None = Field(default=None, alias="pm2RestartMode")
    build_command: str | None = Field(default=None, alias="buildCommand")
    build_args: list[object] | None = Field(default=None, alias="buildArgs")
    test_command: str | None = Field(default=None, alias="testCommand")
    test_args: list[str] | None = Field(default=None, alias="testArgs")


@dataclass(slots=True, frozen=True)
class ResolvedProfile:
    name: str
    ssh_connection_string: str
    remote_dir: str
    build_dir: str
    env: str
    pm2_app_name: str
    pm2_restart_mode: RestartMode
    build_command: str
    build_args: tuple[str, ...]
    test_command: str | None = None
    test_args: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ProfileOverrides:
    ssh_connection_string: str | None = None
    remote_dir: str | None = None
    build_dir: str | None = None
    env: str | None = None
    pm2_app_name: str | None = None
    pm2_restart_mode: str | None = None


@dataclass(slots=True)
class ProfileCatalog:
    """Deploy profiles loaded from disk, resolved by name on demand."""

    profiles: list[Profile] = field(default_factory=list)
    source: Path | None = None

    def names(self) -> list[str]:
        return [profile.name for profile in self.profiles]

    def resolve(self, name: str) -> ResolvedProfile:
        profile = next((p for p in self.profiles if p.name == name), None)
        if profile is None:
            raise ConfigError(f"Profile not found: {name}", code="CONFIG_PROFILE_NOT_FOUND")
        return resolve_profile(profile)


def _require_string(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"Missing required field: {field_name}", code="CONFIG_PROFILE_INVALID"
        )
    return value.strip()


def _optional_string(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def validate_restart_mode(value: str | None) -> RestartMode | None:
    # Blank is treated as not provided so the default applies.
    trimmed = _optional_string(value)
    if trimmed is None:
        return None
    if trimmed == "startOrReload":
        return "startOrReload"
    if trimmed == "reboot":
        return "reboot"
    raise ConfigError(
        f"Invalid pm2RestartMode: {value}", code="CONFIG_INVALID_RESTART_MODE"
    )


def _validate_build_args(value: list[object] | None) -> tuple[str, ...]:
    if not value:
        raise ConfigError("Missing required field: buildArgs", code="CONFIG_PROFILE_INVALID")
    normalized: list[str] = []
    for index, arg in enumerate(value):
        if not isinstance(arg, str):
            raise ConfigError(
                f"buildArgs[{index}] must be a non-empty string", code="CONFIG_PROFILE_INVALID"
            )
        trimmed = arg.strip()
        if not trimmed:
            raise ConfigError(
                "buildArgs must not contain empty values", code="CONFIG_PROFILE_INVALID"
            )
        normalized.append(trimmed)
    return tuple(normalized)


def resolve_profile(profile: Profile) -> ResolvedProfile:
    by_alias = profile.model_dump(by_alias=True)
    required = {key: _require_string(by_alias.get(key), key) for key in REQUIRED_PROFILE_FIELDS}
    return ResolvedProfile(
        name=profile.name,
        ssh_connection_string=required["sshConnectionString"],
        remote_dir=required["remoteDir"],
        env=required["env"],
        pm2_app_name=required["pm2AppName"],
        build_dir=_optional_string(profile.build_dir) or DEFAULT_BUILD_DIR,
        pm2_restart_mode=validate_restart_mode(profile.pm2_restart_mode) or DEFAULT_RESTART_MODE,
        build_command=_require_string(profile.build_command, "buildCommand"),
        build_args=_validate_build_args(profile.build_args),
        test_command=_optional_string(profile.test_command),
        test_args=tuple(profile.test_args or ()),
    )


def apply_overrides(profile: ResolvedProfile, overrides: ProfileOverrides) -> ResolvedProfile:
    restart_mode = _optional_string(overrides.pm2_restart_mode)
    if restart_mode is not None and restart_mode not in RESTART_MODES:
        raise ConfigError(
            f'Invalid pm2RestartMode override "{restart_mode}". '
            'Use "startOrReload" or "reboot".',
            code="CONFIG_INVALID_RESTART_MODE",
        )
    return ResolvedProfile(
        name=profile.name,
        ssh_connection_string=(
            _optional_string(overrides.ssh_connection_string) or profile.ssh_connection_string
        ),
        remote_dir=_optional_string(overrides.remote_dir) or profile.remote_dir,
        build_dir=_optional_string(overrides.build_dir) or profile.build_dir,
        env=_optional_string(overrides.env) or profile.env,
        pm2_app_name=_optional_string(overrides.pm2_app_name) or profile.pm2_app_name,
        pm2_restart_mode=validate_restart_mode(restart_mode) or profile.pm2_restart_mode,
        build_command=profile.build_command,
        build_args=profile.build_args,
        test_command=profile.test_command,
        test_args=profile.test_args,
    )


def profiles_search_paths(override_path: str | None, cwd: Path) -> list[Path]:
    paths: list[Path] = []
    if override_path:
        candidate = Path(override_path)
        paths.append(candidate if candidate.is_absolute() else (cwd / candidate).resolve())
    paths.append((cwd / PROFILES_FILENAME).resolve())
    return paths


def load_profiles(search_paths: list[Path] | None = None) -> ProfileCatalog:
    """Load the first readable profiles file from *search_paths*."""
    if search_paths is None:
        search_paths = profiles_search_paths(get_settings().deploy_profiles_path, Path.cwd())

    for candidate in search_paths:
        try:
            decoded = json.loads(candidate.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        return _catalog_from_json(decoded, candidate)

    raise ConfigError(PROFILE_FILE_ERROR_MESSAGE, code="CONFIG_PROFILE_FILE_NOT_FOUND")


def _catalog_from_json(decoded: object, source: Path) -> ProfileCatalog:
    if not isinstance(decoded, list) or not decoded:
        raise ConfigError(PROFILE_FILE_ERROR_MESSAGE, code="CONFIG_PROFILE_FILE_NOT_FOUND")

    profiles: list[Profile] = []
    for index, raw in enumerate(decoded):
        try:
            profiles.append(Profile.model_validate(raw))
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigError(
                f"profiles[{index}] is invalid ({location}): {first.get('msg', 'invalid')}",
                code="CONFIG_PROFILE_INVALID",
            ) from exc

    seen: set[str] = set()
    for profile in profiles:
        if profile.name in seen:
            raise ConfigError(
                f"Duplicate profile name: {profile.name}", code="CONFIG_DUPLICATE_PROFILE"
            )
        seen.add(profile.name)
    return ProfileCatalog(profiles=profiles, source=source)
