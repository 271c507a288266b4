from __future__ import annotations

import logging

from planrun._schema import MetadataRecord

logger = logging.getLogger(__name__)


def parse_metadata(entries: list[str]) -> list[MetadataRecord]:
    """Parse repeated ``key=value`` metadata flags.

    Entries that do not split into exactly one key and one value are dropped
    with a warning.
    """
    records: list[MetadataRecord] = []
    for entry in entries:
        parts = entry.split("=")
        if len(parts) != 2:
            logger.warning("Unable to parse metadata parameter '%s'", entry)
            continue
        key, value = parts
        records.append(MetadataRecord(key=key, value=value))
    return records
