import re

DEFAULT_LINE_ENDING = "\n"
LINE_ENDINGS = ("\r\n", "\n")
CONTINUATION = "\\"

WHITESPACE = " \t\r\n\v\f"
MACRO_DELIMITERS = WHITESPACE + "[]{}<>()=+-*/%!&|^.,:;?~#\"'\\"
DIRECTIVE_DELIMITERS = WHITESPACE + "="

_patterns = {}


def _delimiter_pattern(delimiters):
    pattern = _patterns.get(delimiters)
    if pattern is None:
        pattern = re.compile(f"[{re.escape(delimiters)}]")
        _patterns[delimiters] = pattern
    return pattern


def next_token(text, pos, delimiters=MACRO_DELIMITERS):
    """
    Scan text from pos up to the next delimiter character.

    Returns ``(token, delimiter, next_pos)`` where token is the run
    before the delimiter and next_pos points just past it. When no
    delimiter is left the remainder of text is returned with ``None``
    as both delimiter and next_pos.
    """
    match = _delimiter_pattern(delimiters).search(text, pos)
    if match is None:
        return text[pos:], None, None
    start = match.start()
    return text[pos:start], text[start], start + 1


def tokenize(text, delimiters=MACRO_DELIMITERS):
    """
    Yield ``(token, delimiter)`` pairs covering all of text.

    Joining every token and delimiter gives back text unchanged. Tokens
    are empty between consecutive delimiters; the last pair has
    ``None`` as delimiter unless text ends with one.
    """
    pos = 0
    while pos is not None:
        token, delimiter, pos = next_token(text, pos, delimiters)
        if token or delimiter is not None:
            yield token, delimiter


def split_line_ending(line):
    for ending in LINE_ENDINGS:
        if line.endswith(ending):
            return line[:-len(ending)], ending
    return line, ""


def read_logical_lines(f_obj, line_ending=DEFAULT_LINE_ENDING):
    """
    Yield ``(line_no, logical_line)`` from an iterable of physical lines.

    A backslash right before the line ending continues the line: the
    backslash and the ending are dropped and the next physical line is
    appended without its leading blanks. line_no is the 1-based number
    of the first physical line. Line endings are normalised to
    line_ending.
    """
    parts = []
    start_no = None
    for line_no, line in enumerate(f_obj, 1):
        body, ending = split_line_ending(line)
        if parts:
            body = body.lstrip(" \t")
        else:
            start_no = line_no
        if ending and body.endswith(CONTINUATION):
            parts.append(body[:-1])
            continue
        parts.append(body)
        yield start_no, "".join(parts) + (line_ending if ending else "")
        parts = []
    if parts:
        yield start_no, "".join(parts)
