"""
Evaluation payload handling — repair, strict parse, and targeted field extraction.

The `calificacion` column holds a quasi-JSON blob written by the upstream
evaluator. It is not guaranteed to be valid JSON: line breaks end up inside
values and time-of-day values are sometimes written bare (`02:15:30`).

Two paths:
    - extract_scores(raw)  — regex lookups for final_score / tiempo_promedio.
                             Never parses, never raises. Used for every
                             aggregate so that unrepairable blobs still count.
    - parse_payload(raw)   — repair_payload() followed by json.loads().
                             Only used by the single-evaluation detail view.
"""
import json
import logging
import re

logger = logging.getLogger(__name__)

_NEWLINES_RE = re.compile(r"[\r\n]")
_BARE_TIME_RE = re.compile(r'("(?:[^"\\]|\\.)*")|:\s*(\d{1,2}:\d{1,2}:\d{1,2})')

_SCORE_RE = re.compile(r'"final_score":\s*(\d+)')
_NULL_SCORE_MARKERS = ('"final_score": null', '"final_score":null')
_DURATION_RE = re.compile(r'"tiempo_promedio":\s*"(\d{1,2}:\d{1,2}:\d{1,2})"')

ZERO_DURATION = "00:00:00"


def _quote_bare_time(match):
    # Quoted strings are matched first and returned as-is.
    if match.group(1) is not None:
        return match.group(1)
    return ': "%s"' % match.group(2)


def repair_payload(text):
    if not text:
        return text
    fixed = _NEWLINES_RE.sub("", text)
    fixed = _BARE_TIME_RE.sub(_quote_bare_time, fixed)
    # true/false/null and bare integers before "," or "}" are already valid
    # JSON and are left exactly as written.
    return fixed


def parse_payload(text):
    """Repair and strictly parse a stored payload.

    Raises ValueError (json.JSONDecodeError) when the repaired text is still
    not valid JSON. A NULL column yields None.
    """
    if text is None or isinstance(text, (dict, list)):
        return text
    return json.loads(repair_payload(text))


class ExtractedScores:
    __slots__ = ("final_score", "average_duration")

    def __init__(self, final_score=None, average_duration=None):
        self.final_score = final_score
        self.average_duration = average_duration

    @property
    def usable(self):
        return self.final_score is not None and self.final_score >= 0

    @property
    def duration_seconds(self):
        return duration_to_seconds(self.average_duration)

    def __eq__(self, other):
        if not isinstance(other, ExtractedScores):
            return NotImplemented
        return (self.final_score, self.average_duration) == (other.final_score, other.average_duration)

    def __repr__(self):
        return "ExtractedScores(final_score=%r, average_duration=%r)" % (
            self.final_score, self.average_duration,
        )


def extract_scores(raw):
    if not raw or not isinstance(raw, str):
        return ExtractedScores()

    duration_match = _DURATION_RE.search(raw)
    average_duration = duration_match.group(1) if duration_match else None

    if any(marker in raw for marker in _NULL_SCORE_MARKERS):
        return ExtractedScores(None, average_duration)

    score_match = _SCORE_RE.search(raw)
    final_score = int(score_match.group(1)) if score_match else None
    return ExtractedScores(final_score, average_duration)


def duration_to_seconds(value):
    if not value or value == ZERO_DURATION:
        return 0
    parts = str(value).split(":")
    if len(parts) != 3:
        return 0
    try:
        hours, minutes, seconds = (int(p) for p in parts)
    except ValueError:
        return 0
    return hours * 3600 + minutes * 60 + seconds


def seconds_to_hms(seconds):
    if not seconds:
        return ZERO_DURATION
    total = int(seconds)
    return "%02d:%02d:%02d" % (total // 3600, (total % 3600) // 60, total % 60)


def score_records(records):
    """Split records into (usable, skipped_count).

    Usable records are shallow copies carrying `final_score` and
    `tiempo_promedio` next to the stored columns.
    """
    usable = []
    skipped = 0
    for record in records:
        scores = extract_scores(record.get("calificacion"))
        if not scores.usable:
            skipped += 1
            logger.debug("[PAYLOAD] %s: no usable final_score", record.get("lead_id"))
            continue
        scored = dict(record)
        scored["final_score"] = scores.final_score
        scored["tiempo_promedio"] = scores.average_duration
        usable.append(scored)
    return usable, skipped
