import json
import logging
import re
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger('response-parser')

FIELDS = ('html', 'css', 'js')

_FENCE_RE = re.compile(r'```(?:json|javascript|js)?', re.IGNORECASE)

# One alternation so every escape is consumed exactly once, left to right.
_ESCAPE_RE = re.compile(r'\\(u003[cCeE]|u0026|["\'\\/nrt])')
_ESCAPE_MAP = {
    '"': '"',
    "'": "'",
    '\\': '\\',
    '/': '/',
    'n': '\n',
    'r': '\r',
    't': '\t',
    'u003c': '<',
    'u003e': '>',
    'u0026': '&',
}


def unescape_content(text: str) -> str:
    """Turn textual escape sequences left in model output into literal characters."""
    if not text:
        return ''
    return _ESCAPE_RE.sub(lambda m: _ESCAPE_MAP[m.group(1).lower()], text)


def sanitize_response(text: str) -> str:
    """Strip markdown fences and trim the text to its outermost ``{ ... }`` span.

    Never raises; when no object boundaries can be found the (fence-free) text
    is returned as is and later strategies have to cope with it.
    """
    if not text:
        return ''
    cleaned = _FENCE_RE.sub('', text).strip()

    start = cleaned.find('{')
    end = cleaned.rfind('}')
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]

    if not cleaned.endswith('}'):
        last = cleaned.rfind('}')
        if last != -1:
            cleaned = cleaned[:last + 1]
    return cleaned


def _as_text(value) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def parse_structured(text: str) -> Optional[Dict[str, str]]:
    # strict=False lets raw newlines/tabs inside string values through
    try:
        data = json.loads(text, strict=False)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return {field: _as_text(data.get(field)) for field in FIELDS}


def _field_patterns(field: str):
    name = re.escape(field)
    return (
        re.compile(r'"%s"\s*:\s*"((?:[^"\\]|\\.)*)"' % name, re.DOTALL),
        re.compile(r"'%s'\s*:\s*'((?:[^'\\]|\\.)*)'" % name, re.DOTALL),
        re.compile(r'["\']?%s["\']?\s*:\s*`((?:[^`\\]|\\.)*)`' % name, re.DOTALL),
        re.compile(r'(?<![\w"\'])%s\s*:\s*"((?:[^"\\]|\\.)*)"' % name, re.DOTALL),
    )


_PATTERNS = {field: _field_patterns(field) for field in FIELDS}


def parse_with_regex(text: str) -> Optional[Dict[str, str]]:
    """Pull each field out with local patterns, ignoring the rest of the document."""
    if not text:
        return None
    found = {}
    for field in FIELDS:
        for pattern in _PATTERNS[field]:
            m = pattern.search(text)
            if m:
                found[field] = unescape_content(m.group(1))
                break
    return found or None


def _scan_field(text: str, field: str) -> Optional[str]:
    key_pos = text.find('"%s"' % field)
    if key_pos == -1:
        return None
    colon = text.find(':', key_pos + len(field) + 2)
    if colon == -1:
        return None
    open_quote = text.find('"', colon + 1)
    if open_quote == -1:
        return None

    i = open_quote + 1
    while i < len(text):
        ch = text[i]
        if ch == '\\':
            i += 2
            continue
        if ch == '"':
            return unescape_content(text[open_quote + 1:i])
        i += 1
    # no closing quote before end of text
    return None


def parse_manually(text: str) -> Optional[Dict[str, str]]:
    if not text:
        return None
    found = {}
    for field in FIELDS:
        value = _scan_field(text, field)
        if value is not None:
            found[field] = value
    return found or None


Strategy = Callable[[str], Optional[Dict[str, str]]]

STRATEGIES: Tuple[Tuple[str, Strategy, bool], ...] = (
    # (name, function, runs on sanitized text)
    ('structured', parse_structured, True),
    ('regex', parse_with_regex, False),
    ('manual', parse_manually, False),
)


def _filled(fields: Dict[str, str]) -> int:
    return sum(1 for f in FIELDS if fields.get(f))


def extract_fields(raw: str) -> Dict[str, str]:
    """Run the extraction cascade over a raw model response.

    Strategies are tried from strictest to most tolerant and the first one that
    yields all three fields non-empty wins. Otherwise the most complete partial
    result is returned (earliest strategy on ties), with missing fields as "".
    """
    empty = {f: '' for f in FIELDS}
    if not raw or not raw.strip():
        logger.warning('Empty model response; nothing to extract')
        return empty

    sanitized = sanitize_response(raw)
    best = empty
    for name, strategy, wants_sanitized in STRATEGIES:
        try:
            result = strategy(sanitized if wants_sanitized else raw)
        except Exception:
            logger.debug('Extraction strategy %s raised; trying next', name, exc_info=True)
            continue
        if result is None:
            logger.debug('Extraction strategy %s did not apply', name)
            continue
        fields = {f: result.get(f) or '' for f in FIELDS}
        if _filled(fields) == len(FIELDS):
            logger.info('Extracted all fields with %s strategy', name)
            return fields
        logger.info('Strategy %s recovered %d/%d fields', name, _filled(fields), len(FIELDS))
        if _filled(fields) > _filled(best):
            best = fields

    logger.warning('No strategy recovered every field; keeping best partial result (%d/%d)',
                   _filled(best), len(FIELDS))
    return best
