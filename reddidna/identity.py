"""Turn whatever the user typed into a canonical Reddit handle.

Accepted shapes (permissive policy):
  kojied
  u/kojied
  https://www.reddit.com/user/kojied/
  https://www.reddit.com/u/kojied/s/AbCdEf   (mobile share link)

The strict policy only accepts absolute reddit.com/user/<name> URLs and
reports a specific message for each rejection.
"""
import logging
import re
import urllib.parse

from reddidna.errors import IdentityError

_log = logging.getLogger(__name__)

_MOBILE_RE = re.compile(r"/u/([^/?#\s]+)/")
_DESKTOP_RE = re.compile(r"/user/([^/?#\s]+)")
_REDDIT_HOSTS = {"reddit.com", "www.reddit.com"}


def _extract(text: str) -> str:
    match = _MOBILE_RE.search(text)
    if match:
        return match.group(1)
    match = _DESKTOP_RE.search(text)
    if match:
        return match.group(1)
    return text.removeprefix("u/").rstrip("/")


def normalize(raw: str) -> str:
    """Return the handle contained in ``raw``. Never raises."""
    try:
        trimmed = raw.strip()
    except AttributeError:
        return str(raw).strip()
    try:
        return _extract(trimmed)
    except Exception:
        _log.exception("identity extraction failed for %r, using trimmed input", raw)
        return trimmed


def normalize_strict(raw: str) -> str:
    """Accept only https://[www.]reddit.com/user/<name> URLs; raise IdentityError otherwise."""
    text = raw.strip()
    if not text:
        raise IdentityError("Please enter a Reddit profile link.")

    url = urllib.parse.urlsplit(text)
    if not url.scheme or not url.netloc:
        raise IdentityError("Please enter a valid and complete URL (e.g., https://www.reddit.com/...).")
    if url.hostname not in _REDDIT_HOSTS:
        raise IdentityError("Please enter a valid Reddit.com URL.")

    parts = [p for p in url.path.split("/") if p]
    if len(parts) < 2 or parts[0] != "user":
        raise IdentityError("URL must be a valid user profile link (e.g., reddit.com/user/username).")
    return parts[1]


def validate_submission(identity: str) -> str:
    """Reject identities that must never reach the service."""
    if not identity:
        raise IdentityError("Please enter a Reddit username or profile link.")
    return identity


def resolve(raw: str, *, strict: bool = False) -> str:
    """Normalize under the chosen policy and validate; the only entry point callers need."""
    identity = normalize_strict(raw) if strict else normalize(raw)
    return validate_submission(identity)
