"""
Hashtag extraction and label normalization.

Everything here is pure: no database access and no shared state.
"""
import re
from functools import lru_cache

from constants import TAG_MARKER, MAX_TAG_LENGTH, MAX_MANUAL_TAGS


@lru_cache(maxsize=8)
def _tag_pattern(marker):
    # A marker glued to a preceding word character belongs to that word ("foo#bar")
    return re.compile(r"(?<!\w)" + re.escape(marker) + r"(\w+)")


def extract_tags(text, marker=TAG_MARKER):
    """
    Extract canonical hashtags from free text.

    A tag is the marker followed by one or more word characters. The label
    keeps the marker and lower-cases the body, so "#Beta" becomes "#beta".

    >>> sorted(extract_tags("hello #alpha #Beta #alpha"))
    ['#alpha', '#beta']
    """
    if not text:
        return set()
    return {marker + body.lower() for body in _tag_pattern(marker).findall(text)}


def process_tags(labels, marker=TAG_MARKER, max_length=MAX_TAG_LENGTH, max_tags=MAX_MANUAL_TAGS):
    """Normalize manually supplied labels, dropping anything unusable"""
    if not labels or isinstance(labels, str):
        return []

    invalid = re.compile(r"[^\w" + re.escape(marker) + r"]")
    processed = []
    for label in labels:
        if not isinstance(label, str):
            continue
        tag = label.strip().lower()
        if not tag.startswith(marker):
            tag = marker + tag
        tag = marker + invalid.sub("", tag[len(marker):]).replace(marker, "")
        if tag == marker or len(tag) > max_length or tag in processed:
            continue
        processed.append(tag)
    return processed[:max_tags]


def merge_tags(current, added):
    """
    Ordered union: existing labels keep their position, new ones follow sorted.

    Labels are case-folded on the way through, so a field entry such as
    "#Legacy" and an extracted "#legacy" count as the same tag.
    """
    merged = list(dict.fromkeys(tag.lower() for tag in current or []))
    seen = set(merged)
    for tag in sorted(tag.lower() for tag in added):
        if tag not in seen:
            seen.add(tag)
            merged.append(tag)
    return merged
