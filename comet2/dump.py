"""
Human-readable dumps for the debugger: word hex, memory listing.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple


def to_word_hex(value: int) -> str:
    """CASL-style hex: 16 -> '#0010'. Negative words show two's complement."""
    return f"#{value & 0xFFFF:04X}"


def memory_debug_info(dump: Iterable[Tuple[int, int]],
                      addr_map: Dict[int, int],
                      source: Optional[Sequence[Sequence[str]]] = None) -> str:
    """List every stored word with the source line that produced it.

    Args:
        dump: (address, word) pairs, e.g. Memory.dump()
        addr_map: address -> source line index, from the Compiler
        source: tokenized source rows, to show the originating line
    """
    lines: List[str] = []
    lines.append(f"{'ADDR':<6} {'WORD':<6} {'LINE':>4}  SOURCE")
    lines.append("-" * 48)
    for addr, word in dump:
        index = addr_map.get(addr)
        if index is None:
            lines.append(f"{to_word_hex(addr)} {to_word_hex(word)}")
            continue
        text = ''
        if source is not None and 0 <= index < len(source):
            text = format_source_row(source[index])
        lines.append(f"{to_word_hex(addr)} {to_word_hex(word)} {index:>4}  {text}")
    return '\n'.join(lines)


def format_source_row(row: Sequence[str]) -> str:
    """Rebuild a tokenized row as 'LABEL  MNEM  op1,op2,op3'."""
    label = row[0] if row else ''
    mnem = row[1] if len(row) > 1 else ''
    operands = ','.join(op for op in row[2:] if op)
    return f"{label:<8} {mnem:<5} {operands}".rstrip()
