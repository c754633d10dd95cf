from __future__ import annotations

from dataclasses import dataclass

from app.core.config import Settings


@dataclass(frozen=True, slots=True)
class DirectoryClientConfig:
    base_url: str
    api_version: str = "v59.0"
    timeout_seconds: float = 30.0
    client_id: str | None = None
    client_secret: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> DirectoryClientConfig:
        return cls(
            base_url=settings.directory_base_url,
            api_version=settings.directory_api_version,
            timeout_seconds=settings.directory_timeout_seconds,
            client_id=settings.directory_client_id,
            client_secret=settings.directory_client_secret,
        )

    @property
    def api_root(self) -> str:
        return f"/services/data/{self.api_version}"
