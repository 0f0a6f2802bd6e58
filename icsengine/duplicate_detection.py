"""Duplicate event detection for import, merge and cleanup.

Two events are duplicates when:
    1. both carry a UID (and UIDs are in use): the UIDs are equal, nothing else counts
    2. otherwise every enabled criterion holds: same normalized title, start and
       end within ``date_tolerance`` milliseconds, same normalized location

Candidates are found through a bucket index keyed like ``generate_event_key``.
Keys only narrow the search; every candidate is confirmed with
``is_duplicate``. Events sitting on either side of a bucket boundary are still
found because lookups also probe the neighbouring start/end buckets.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Optional, TypeVar, Union

from .datetime_utils import to_millis
from .models import DeduplicationResult, DuplicateCandidate, DuplicateDetectionConfig

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=DuplicateCandidate)

ConfigLike = Union[DuplicateDetectionConfig, Mapping[str, Any], None]


def resolve_config(config: ConfigLike = None) -> DuplicateDetectionConfig:
    """Build a detection config from None, a config object or a (camelCase or snake_case) mapping.

    Raises:
        pydantic.ValidationError: If the mapping holds invalid values (e.g. tolerance <= 0)
    """
    if config is None:
        return DuplicateDetectionConfig()
    if isinstance(config, DuplicateDetectionConfig):
        return config
    return DuplicateDetectionConfig.model_validate(dict(config))


def normalize_title(title: Optional[str]) -> str:
    """Lower-case, trim and collapse internal whitespace runs to one space."""
    return " ".join((title or "").lower().split())


def normalize_location(location: Optional[str]) -> str:
    """Lower-case and trim; a missing location equals an empty one."""
    return (location or "").lower().strip()


def _uid_key(event: DuplicateCandidate, config: DuplicateDetectionConfig) -> Optional[str]:
    if config.use_uid and event.uid:
        return f"uid:{event.uid}"
    return None


def _buckets(event: DuplicateCandidate, config: DuplicateDetectionConfig) -> tuple[int, int]:
    return (
        to_millis(event.start_date) // config.date_tolerance,
        to_millis(event.end_date) // config.date_tolerance,
    )


def _bucket_key(
    event: DuplicateCandidate,
    config: DuplicateDetectionConfig,
    start_bucket: int,
    end_bucket: int,
) -> str:
    parts: list[str] = []
    if config.use_title:
        parts.append(normalize_title(event.title))
    parts.append(f"{start_bucket}-{end_bucket}")
    if config.use_location:
        location = normalize_location(event.location)
        if location:
            parts.append(location)
    return "|".join(parts)


def generate_event_key(event: DuplicateCandidate, config: ConfigLike = None) -> str:
    """Grouping key for an event: ``uid:<uid>`` or ``<title>|<start>-<end>[|<location>]``.

    Buckets are ``floor(epoch_ms / date_tolerance)``. Equal keys do not
    guarantee duplicates, and near-boundary duplicates can get different keys.
    """
    config = resolve_config(config)
    uid_key = _uid_key(event, config)
    if uid_key:
        return uid_key
    start_bucket, end_bucket = _buckets(event, config)
    return _bucket_key(event, config, start_bucket, end_bucket)


def is_duplicate(
    event1: DuplicateCandidate,
    event2: DuplicateCandidate,
    config: ConfigLike = None,
) -> bool:
    """Check whether two events are the same logical event under the given policy."""
    config = resolve_config(config)

    # Both UIDs present: UID equality decides on its own
    if config.use_uid and event1.uid and event2.uid:
        return event1.uid == event2.uid

    if config.use_title and normalize_title(event1.title) != normalize_title(event2.title):
        return False

    start_diff = abs(to_millis(event1.start_date) - to_millis(event2.start_date))
    end_diff = abs(to_millis(event1.end_date) - to_millis(event2.end_date))
    if start_diff > config.date_tolerance or end_diff > config.date_tolerance:
        return False

    if config.use_location and normalize_location(event1.location) != normalize_location(
        event2.location
    ):
        return False

    return True


class _CandidateIndex:
    """Keyed lookup of previously seen events, in insertion order.

    Events with a UID live under their ``uid:`` key and in ``_uid_buckets``;
    the rest live in ``_plain_buckets``. Two UID-bearing events are only ever
    duplicates through equal UIDs, so they never scan each other's buckets.
    """

    def __init__(self, config: DuplicateDetectionConfig):
        self.config = config
        self._by_uid: defaultdict[str, list[tuple[int, Any]]] = defaultdict(list)
        self._uid_buckets: defaultdict[str, list[tuple[int, Any]]] = defaultdict(list)
        self._plain_buckets: defaultdict[str, list[tuple[int, Any]]] = defaultdict(list)
        self._count = 0

    def add(self, event: Any) -> None:
        entry = (self._count, event)
        self._count += 1

        start_bucket, end_bucket = _buckets(event, self.config)
        bucket_key = _bucket_key(event, self.config, start_bucket, end_bucket)
        uid_key = _uid_key(event, self.config)
        if uid_key:
            self._by_uid[uid_key].append(entry)
            self._uid_buckets[bucket_key].append(entry)
        else:
            self._plain_buckets[bucket_key].append(entry)

    def _neighbour_keys(self, event: Any) -> list[str]:
        start_bucket, end_bucket = _buckets(event, self.config)
        return [
            _bucket_key(event, self.config, start_bucket + start_offset, end_bucket + end_offset)
            for start_offset in (-1, 0, 1)
            for end_offset in (-1, 0, 1)
        ]

    def _candidate_lists(self, event: Any) -> Iterator[list[tuple[int, Any]]]:
        uid_key = _uid_key(event, self.config)
        if uid_key:
            yield self._by_uid.get(uid_key, [])
        bucket_maps = [self._plain_buckets] if uid_key else [self._plain_buckets, self._uid_buckets]
        for key in self._neighbour_keys(event):
            for bucket_map in bucket_maps:
                yield bucket_map.get(key, [])

    def find_match(self, event: Any) -> Optional[Any]:
        """Return the earliest indexed event that is a duplicate of ``event``."""
        best: Optional[tuple[int, Any]] = None
        for entries in self._candidate_lists(event):
            # entries are in insertion order, so the first match is the earliest here
            for sequence, candidate in entries:
                if best is not None and sequence >= best[0]:
                    break
                if is_duplicate(event, candidate, self.config):
                    best = (sequence, candidate)
                    break
        return best[1] if best else None


def deduplicate_events(events: Iterable[E], config: ConfigLike = None) -> DeduplicationResult[E]:
    """Split events into unique ones and duplicates, keeping the first occurrence.

    Each event is compared against the events kept so far only; a match is
    attributed to the earliest kept event. Inputs are never mutated.

    Args:
        events: Events in priority order (earlier wins)
        config: Detection policy

    Returns:
        DeduplicationResult with ``unique`` and ``duplicates`` in input order
    """
    config = resolve_config(config)
    index = _CandidateIndex(config)
    result: DeduplicationResult[E] = DeduplicationResult()

    for event in events:
        original = index.find_match(event)
        if original is not None:
            result.duplicates.append(event)
            result.pairs.append((event, original))
            continue
        index.add(event)
        result.unique.append(event)

    if result.duplicates:
        logger.debug(
            f"Deduplicated {len(result.unique) + len(result.duplicates)} events: "
            f"{len(result.duplicates)} duplicates removed"
        )
    return result


def find_duplicates_against_existing(
    new_events: Iterable[E],
    existing_events: Iterable[DuplicateCandidate],
    config: ConfigLike = None,
) -> DeduplicationResult[E]:
    """Classify new events as unique or duplicates of an existing set.

    New events are not compared with each other, and the existing events are
    never classified.
    """
    config = resolve_config(config)
    index = _CandidateIndex(config)
    for existing in existing_events:
        index.add(existing)

    result: DeduplicationResult[E] = DeduplicationResult()
    for event in new_events:
        match = index.find_match(event)
        if match is not None:
            result.duplicates.append(event)
            result.pairs.append((event, match))
        else:
            result.unique.append(event)
    return result


def get_duplicate_ids(events: Iterable[Any], config: ConfigLike = None) -> list[str]:
    """IDs of events that self-deduplication would remove (first occurrence kept)."""
    return [event.id for event in deduplicate_events(events, config).duplicates]
