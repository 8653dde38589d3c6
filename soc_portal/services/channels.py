from typing import List

# Channels whose downtime is tracked and reported independently, in display order
ALL_CHANNELS = ["APP", "USSD", "WEB", "SMS", "MIDDLEWARE", "INWARD SERVICE"]


def expand_channels(affected_channel: str) -> List[str]:
    """
    Normalize an ``affected_channel`` value into concrete channel tags.

    ``ALL`` (any case) expands to every tracked channel; a comma separated value is
    split, trimmed and upper-cased; anything else is a single upper-cased tag.
    Unknown tags are passed through unchanged.
    """
    value = (affected_channel or "").strip()
    if not value:
        return []

    if value.upper() == "ALL":
        return list(ALL_CHANNELS)

    if "," in value:
        tags = []
        for token in value.split(","):
            tag = token.strip().upper()
            if tag and tag not in tags:
                tags.append(tag)
        return tags

    return [value.upper()]


def is_known_channel(tag: str) -> bool:
    return tag in ALL_CHANNELS
