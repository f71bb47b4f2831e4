"""
Subject Resolution

A subject is the page being analyzed. Content is owned by the host site;
resolvers only look it up.

- SubjectResolver:      interface
- StaticSubjectResolver: in-memory mapping (embedding hosts, tests)
- HttpSubjectResolver:  fetches the live page; the subject id is its URL
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Dict, Iterable, Optional

import httpx

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


@dataclass
class Subject:
    """A page as supplied by the host."""
    id: str
    title: str
    content: str
    url: str
    modified_at: Optional[datetime] = None


class SubjectResolver(ABC):
    """Looks up subjects by id or by canonical URL."""

    @abstractmethod
    def get(self, subject_id: str) -> Optional[Subject]:
        pass

    @abstractmethod
    def resolve_url(self, url: str) -> Optional[Subject]:
        pass

    def url_for(self, subject_id: str) -> Optional[str]:
        subject = self.get(subject_id)
        return subject.url if subject else None


class StaticSubjectResolver(SubjectResolver):
    def __init__(self, subjects: Iterable[Subject] = ()):
        self._by_id: Dict[str, Subject] = {}
        self._by_url: Dict[str, Subject] = {}
        for subject in subjects:
            self.add(subject)

    def add(self, subject: Subject) -> None:
        self._by_id[str(subject.id)] = subject
        self._by_url[subject.url.rstrip("/")] = subject

    def get(self, subject_id: str) -> Optional[Subject]:
        return self._by_id.get(str(subject_id))

    def resolve_url(self, url: str) -> Optional[Subject]:
        return self._by_url.get(url.rstrip("/"))


class HttpSubjectResolver(SubjectResolver):
    """Fetches pages over HTTP. Any fetch failure resolves to None."""

    def __init__(self, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={
                "User-Agent": "Mozilla/5.0 (compatible; KSEOBot/1.0)",
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def get(self, subject_id: str) -> Optional[Subject]:
        if not str(subject_id).startswith(("http://", "https://")):
            return None
        return self.resolve_url(str(subject_id))

    def resolve_url(self, url: str) -> Optional[Subject]:
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP error fetching {url}: {e.response.status_code}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"Request error fetching {url}: {e}")
            return None
        except (httpx.InvalidURL, ValueError) as e:
            logger.warning(f"Invalid URL {url!r}: {e}")
            return None

        html = response.text
        match = TITLE_PATTERN.search(html)
        title = re.sub(r"\s+", " ", match.group(1)).strip() if match else ""

        modified_at = None
        last_modified = response.headers.get("last-modified")
        if last_modified:
            try:
                modified_at = parsedate_to_datetime(last_modified)
            except (TypeError, ValueError):
                modified_at = None

        return Subject(
            id=str(response.url),
            title=title,
            content=html,
            url=str(response.url),
            modified_at=modified_at,
        )
