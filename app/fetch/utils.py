from typing import List, Optional

SNIPPET_MAX_LINES = 5
SNIPPET_MAX_CHARS = 200

HTML_MEDIA_TYPE = "text/html"

def media_type(content_type: Optional[str]) -> str:
    """
    Return the lowercased primary media type of a Content-Type header.
    Examples: 'text/html; charset=utf-8' -> 'text/html', None -> ''
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()

def is_html_content_type(content_type: Optional[str]) -> bool:
    """A missing Content-Type header counts as non-HTML."""
    return media_type(content_type) == HTML_MEDIA_TYPE

def split_lines(text: str) -> List[str]:
    """
    Split text on '\\n', dropping a trailing '\\r' from each line and the
    empty piece after a final newline.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]

def make_snippet(body: str, max_lines: int = SNIPPET_MAX_LINES, max_chars: int = SNIPPET_MAX_CHARS) -> str:
    """
    Plain-text preview of a response body.

    Takes the first `max_lines` lines, joins them with a single space and
    keeps the first `max_chars` characters. Slicing works on code points, so a
    multi-byte character is never cut in half.
    """
    joined = " ".join(split_lines(body)[:max_lines])
    return joined[:max_chars]
