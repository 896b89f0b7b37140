"""
CASL II line tokenizer.

Turns source text into rows of exactly five fields:

    [label, mnemonic, operand1, operand2, operand3]

Missing fields are ''. The assembler never looks at raw text.

Line format:
  - A label starts in column 0; otherwise the line starts with blanks.
  - Mnemonic, then one blank-free operand field, comma separated.
  - ';' starts a comment (outside quotes). Anything after the operand
    field is also a comment, as in the CASL II listing format.
  - Blank and comment-only lines produce no row.
"""

import re
from typing import List

from .errors import AssemblerError

_REGISTER_RE = re.compile(r'^GR[0-9]+$', re.IGNORECASE)

MAX_OPERANDS = 3


class LexerError(AssemblerError):
    """Raised when a line cannot be split into fields."""


def _strip_comment(line: str) -> str:
    in_string = False
    for i, ch in enumerate(line):
        if ch == "'":
            in_string = not in_string
        elif ch == ';' and not in_string:
            return line[:i]
    return line


def _split_fields(text: str) -> List[str]:
    """Split on blanks outside quotes."""
    fields: List[str] = []
    current = ''
    in_string = False
    for ch in text:
        if ch == "'":
            in_string = not in_string
            current += ch
        elif ch.isspace() and not in_string:
            if current:
                fields.append(current)
                current = ''
        else:
            current += ch
    if current:
        fields.append(current)
    return fields


def split_operands(field: str) -> List[str]:
    """Split an operand field on commas outside quotes."""
    operands: List[str] = []
    current = ''
    in_string = False
    for ch in field:
        if ch == "'":
            in_string = not in_string
            current += ch
        elif ch == ',' and not in_string:
            operands.append(current)
            current = ''
        else:
            current += ch
    operands.append(current)
    return operands


def parse_line(line: str, line_num: int = 0) -> List[str]:
    """Tokenize one line. Returns [] for blank/comment lines."""
    text = _strip_comment(line).rstrip()
    if not text.strip():
        return []

    has_label = not text[0].isspace()
    fields = _split_fields(text)

    label = fields.pop(0) if has_label else ''
    mnemonic = fields.pop(0).upper() if fields else ''
    operand_field = fields[0] if fields else ''

    operands = split_operands(operand_field) if operand_field else []
    if len(operands) > MAX_OPERANDS:
        raise LexerError(f"Too many operands ({len(operands)})", line_num, line)
    operands = [op.upper() if _REGISTER_RE.match(op) else op for op in operands]

    return [label, mnemonic] + operands + [''] * (MAX_OPERANDS - len(operands))


def parse_source(source: str) -> List[List[str]]:
    """Tokenize a whole program, one row per statement."""
    rows = []
    for i, line in enumerate(source.split('\n'), 1):
        row = parse_line(line, i)
        if row:
            rows.append(row)
    return rows
