"""
Text normalization for extraction.

Produces two views of an email or receipt:
- text: line-preserving, used by line-oriented patterns (items, From: lines)
- normalized_text: all whitespace collapsed, used by single-line patterns
"""

import logging
import re
from dataclasses import dataclass

import html2text

logger = logging.getLogger(__name__)

STYLE_SCRIPT_RE = re.compile(r'<(style|script)[^>]*>[\s\S]*?</\1\s*>', re.IGNORECASE)
TAG_RE = re.compile(r'<[^>]+>')
# Known tag names only, so "<orders@shop.com>" in a plain From: line is not HTML
HTML_DETECT_RE = re.compile(
    r'<\s*/?\s*(?:html|head|body|meta|title|style|script|div|span|p|br|hr|a|b|i|u|'
    r'strong|em|font|center|img|table|thead|tbody|tr|td|th|ul|ol|li|h[1-6])'
    r'(?:\s[^>]*)?/?>|<!DOCTYPE[^>]*>',
    re.IGNORECASE,
)
MARKDOWN_ESCAPE_RE = re.compile(r'\\([\\`*_{}\[\]()#+\-.!|])')
TABLE_RULE_RE = re.compile(r'^[\s|:\-]+$')
HORIZONTAL_WS_RE = re.compile(r'[ \t\f\v ]+')

# Only the five standard entities plus &nbsp; are unescaped
HTML_ENTITIES = (
    ('&nbsp;', ' '),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&amp;', '&'),  # Last, so "&amp;lt;" becomes "&lt;" and not "<"
)


@dataclass(frozen=True)
class NormalizedText:
    text: str
    normalized_text: str


def looks_like_html(content: str) -> bool:
    return bool(HTML_DETECT_RE.search(content or ''))


def unescape_entities(text: str) -> str:
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return text


def strip_html(content: str) -> str:
    """
    Remove style/script blocks and tags, unescape entities, collapse whitespace.

    Args:
        content: HTML or plain text

    Returns:
        Single-line normalized text
    """
    text = STYLE_SCRIPT_RE.sub('', content)
    text = TAG_RE.sub(' ', text)
    text = unescape_entities(text)
    return re.sub(r'\s+', ' ', text).strip()


def _tidy_lines(text: str) -> str:
    """Trim each line, collapse horizontal whitespace and blank-line runs."""
    lines = []
    for line in text.replace('\r\n', '\n').replace('\r', '\n').split('\n'):
        line = HORIZONTAL_WS_RE.sub(' ', line).strip()
        if not line and (not lines or not lines[-1]):
            continue
        lines.append(line)
    return '\n'.join(lines).strip()


def html_to_text(html_content: str) -> str:
    """
    Convert HTML email to clean line-oriented text.

    Table pipes and markdown escapes introduced by html2text are removed so
    that "Widget | $5.00" reads as "Widget $5.00".
    """
    h = html2text.HTML2Text()
    h.ignore_links = True
    h.ignore_images = True
    h.ignore_emphasis = True
    h.body_width = 0  # Don't wrap lines

    try:
        text = h.handle(STYLE_SCRIPT_RE.sub('', html_content))
    except Exception as e:
        logger.warning("Error converting HTML to text", extra={
            "error": str(e)
        })
        return strip_html(html_content)

    lines = []
    for line in text.split('\n'):
        if line.strip() and TABLE_RULE_RE.match(line):
            continue
        line = MARKDOWN_ESCAPE_RE.sub(r'\1', line)
        line = re.sub(r'\s*\|\s*', ' ', line)
        line = re.sub(r'^\s*#+\s+', '', line)  # Heading markers
        lines.append(line)
    return '\n'.join(lines)


def normalize(content: str) -> NormalizedText:
    """
    Build both extraction views for plain text or HTML input.

    Examples:
        >>> normalize("<p>Total:&nbsp;<b>$11.00</b></p>").normalized_text
        'Total: $11.00'
    """
    content = content or ''

    if looks_like_html(content):
        # html2text decodes entities itself
        text = html_to_text(content)
    else:
        text = unescape_entities(content)

    text = _tidy_lines(text)
    return NormalizedText(text=text, normalized_text=strip_html(content))
