from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence
from urllib.parse import urlsplit

from sitespeed_web.domain.errors import ValidationError
from sitespeed_web.domain.models import MAX_URLS, MIN_URLS, ResultId, RunRequest


class UrlValidator:
    """Strategy interface."""
    def validate(self, s: str) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class AbsoluteUrlValidator(UrlValidator):
    """
    Accepts only absolute URLs: a scheme plus a network location.

    Schemes are narrowed to http/https on purpose, since sitespeed.io only
    measures web pages and would fail later on ftp:, file: and the like.
    Pass allowed_schemes=frozenset() to accept any scheme with a host.
    """
    allowed_schemes: frozenset[str] = frozenset({"http", "https"})

    def validate(self, s: str) -> str:
        if not isinstance(s, str):
            raise ValidationError(f"Invalid URL: {s!r}")
        candidate = s.strip()
        try:
            parts = urlsplit(candidate)
            # Accessing .port raises ValueError for malformed ports
            parts.port
        except ValueError as e:
            raise ValidationError(f"Invalid URL: {s}") from e

        if not parts.scheme or not parts.netloc or not parts.hostname:
            raise ValidationError(f"Invalid URL: {s}")
        if self.allowed_schemes and parts.scheme.lower() not in self.allowed_schemes:
            raise ValidationError(f"Invalid URL: {s}")
        return candidate


def build_run_request(result_id, urls: Sequence[str] | Iterable[str] | None, validator: UrlValidator) -> RunRequest:
    """Validate id, URL count and every URL. Raises ValidationError; has no side effects."""
    rid = ResultId.parse(result_id)
    if urls is None or isinstance(urls, (str, bytes)):
        raise ValidationError(f"URLs must be between {MIN_URLS} and {MAX_URLS} items")
    url_list = list(urls)
    if not (MIN_URLS <= len(url_list) <= MAX_URLS):
        raise ValidationError(f"URLs must be between {MIN_URLS} and {MAX_URLS} items")
    return RunRequest(result_id=rid, urls=tuple(validator.validate(u) for u in url_list))
