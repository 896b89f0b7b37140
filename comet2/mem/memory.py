"""
COMET II Word Store — sparse word-addressable memory.

Every address holds one word. Addresses that were never written read
as 0, so the store only keeps the words the assembler or a running
program actually touched.

Values are stored exactly as given: arithmetic results are not
truncated to 16 bits here (see DESIGN.md, overflow decision).
"""

from typing import Dict, Iterable, List, Optional, Tuple


class Memory:
    """Sparse address -> word mapping."""

    def __init__(self, initial: Optional[Dict[int, int]] = None):
        self._words: Dict[int, int] = {}
        if initial:
            for addr, value in initial.items():
                self.write(addr, value)

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        """Read the word at addr (0 when never written)."""
        return self._words.get(addr, 0)

    def write(self, addr: int, value: int):
        """Write one word at addr."""
        if addr < 0:
            raise ValueError(f"Negative memory address: {addr}")
        self._words[addr] = value

    def __contains__(self, addr: int) -> bool:
        return addr in self._words

    def __len__(self) -> int:
        return len(self._words)

    # --- Bulk load ---

    def load_words(self, words: Iterable[int], base_addr: int = 0):
        """Copy a sequence of words into consecutive addresses."""
        for i, word in enumerate(words):
            self.write(base_addr + i, word)

    # --- Dump ---

    def dump(self) -> List[Tuple[int, int]]:
        """Return (address, word) pairs for every written word, address order."""
        return sorted(self._words.items())
