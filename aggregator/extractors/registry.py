from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from aggregator.extractors.base import UnknownSourceError


@dataclass(slots=True, frozen=True)
class SourceProfile:
    name: str
    default_agency: str
    booking_domains: tuple[str, ...]

    def is_booking_link(self, href: str | None) -> bool:
        if not href:
            return False
        host = urlparse(href).netloc.lower()
        if not host:
            return False
        return any(host == domain or host.endswith(f".{domain}") for domain in self.booking_domains)


class SourceRegistry:
    def __init__(self) -> None:
        self._profiles = {
            "kiwi": SourceProfile(
                name="kiwi",
                default_agency="Kiwi.com",
                booking_domains=("kiwi.com",),
            ),
            "skyscanner": SourceProfile(
                name="skyscanner",
                default_agency="Skyscanner",
                booking_domains=("skyscnr.com", "skyscanner.net", "skyscanner.com"),
            ),
        }

    def get(self, source: str) -> SourceProfile:
        profile = self._profiles.get(source.strip().lower())
        if profile is None:
            raise UnknownSourceError(
                f"unknown source {source!r}; expected one of {', '.join(self.available_sources)}"
            )
        return profile

    @property
    def available_sources(self) -> list[str]:
        return sorted(self._profiles.keys())
