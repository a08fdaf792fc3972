# src/tasksync/messages/mentions.py

from __future__ import annotations

"""
Mention resolver.

Scans message text for "@name" tokens and resolves each name against the
display names of the process-wide assignee cache (case-insensitive).

Known limitation: display names are not unique across tags and are not
disambiguated; the first cached match wins. Names containing whitespace can
never match because a token ends at the first whitespace.
"""

import logging
import re
from dataclasses import dataclass, field

from ..directory.assignees import AssigneeCache
from ..tasks.task_models import Assignee

logger = logging.getLogger(__name__)

_MENTION_RE = re.compile(r"@(\S+)")

# "Alice<alice@example.com>" / "Alice(alice@example.com)"
_EMAIL_SUFFIX_RE = re.compile(r"^(?P<name>.+?)[<(][^<>()\s]*@[^<>()\s]*[>)]$")


@dataclass(slots=True)
class MentionResult:
    mentions: list[str] = field(default_factory=list)
    formatted_content: str = ""


def strip_email_suffix(name: str) -> str:
    m = _EMAIL_SUFFIX_RE.match(name)
    return m.group("name") if m else name


def find_by_display_name(users: tuple[Assignee, ...], name: str) -> Assignee | None:
    needle = name.casefold()
    for user in users:
        if user.display_name.casefold() == needle:
            return user
    return None


def resolve_mentions(content: str, users: tuple[Assignee, ...]) -> MentionResult:
    """Pure resolution step, separated from the cache wait for testing."""
    mentions: list[str] = []
    seen: set[str] = set()

    def replace(match: re.Match[str]) -> str:
        token = match.group(0)
        name = strip_email_suffix(match.group(1))
        user = find_by_display_name(users, name)
        if user is None or not user.email:
            logger.debug("Mention not resolved: %s", match.group(1))
            return token

        key = user.email.casefold()
        if key not in seen:
            seen.add(key)
            mentions.append(user.email)
        return f"@{user.display_name}"

    formatted = _MENTION_RE.sub(replace, content or "")
    return MentionResult(mentions=mentions, formatted_content=formatted)


class MentionResolver:
    def __init__(self, cache: AssigneeCache) -> None:
        self._cache = cache

    async def extract_mentions(self, content: str, tag_id: str | None = None) -> MentionResult:
        """
        Resolve mentions in content.

        tag_id is accepted for call-site symmetry only: the lookup is not
        scoped to the tag, it uses every assignee known to the cache.
        """
        users = await self._cache.wait_loaded()
        result = resolve_mentions(content, users)
        logger.debug("Mentions extracted tag=%s mentions=%s", tag_id, result.mentions)
        return result
