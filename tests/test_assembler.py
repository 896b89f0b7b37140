"""
Assembler Tests for the CASL II two-pass assembler.

Checks the tokenizer, instruction encodings against the COMET II opcode
table, pseudo-instructions, literal pooling and label resolution.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from casl2 import (Compiler, LineAnalyzer, parse_source, parse_line, assemble,
                   resolve_references, AssemblerError, UndefinedMnemonic,
                   UndefinedLabel, DuplicateLabel, InvalidPseudoInstruction,
                   InvalidOperand, LexerError)
from comet2 import Memory


def _asm_words(source: str, base: int = 0) -> list:
    """Assemble source and return every word from base to the last one."""
    mem, compiler = assemble(source, base)
    return [mem.read(a) for a in range(base, compiler.address)]


class TestLexer:
    def test_label_and_operands(self):
        assert parse_line("LOOP  LD    GR1,BUF,GR2   ; load") == \
            ['LOOP', 'LD', 'GR1', 'BUF', 'GR2']

    def test_no_label(self):
        assert parse_line("      RET") == ['', 'RET', '', '', '']

    def test_comment_and_blank_lines(self):
        assert parse_line("; header comment") == []
        assert parse_line("    ") == []
        assert parse_source("\n; x\n      RET\n\n") == [['', 'RET', '', '', '']]

    def test_quoted_operand_keeps_semicolon(self):
        assert parse_line("      DC    ';'") == ['', 'DC', "';'", '', '']

    def test_trailing_text_is_comment(self):
        assert parse_line("      OUT   MSG,LEN   print it") == ['', 'OUT', 'MSG', 'LEN', '']

    def test_case_folding(self):
        assert parse_line("      ld    gr1,gr2") == ['', 'LD', 'GR1', 'GR2', '']

    def test_too_many_operands(self):
        with pytest.raises(LexerError):
            parse_line("      LD    GR1,A,GR2,GR3", 4)


class TestOpcodeEncoding:
    """Verify individual instruction encodings against the opcode table."""

    def test_register_register(self):
        cases = [
            ("LD    GR1,GR2",   0x1412),
            ("ADDA  GR3,GR4",   0x2434),
            ("SUBA  GR1,GR2",   0x2512),
            ("AND   GR7,GR0",   0x3470),
            ("OR    GR1,GR2",   0x3512),
            ("XOR   GR1,GR2",   0x3612),
            ("CPA   GR5,GR6",   0x4456),
        ]
        for text, expected in cases:
            words = _asm_words(f"      {text}")
            assert words == [expected], f"{text}: expected {expected:04X}, got {words}"

    def test_register_memory(self):
        assert _asm_words("      LD    GR1,#0100") == [0x1010, 0x0100]
        assert _asm_words("      LD    GR1,#0100,GR2") == [0x1012, 0x0100]
        assert _asm_words("      ST    GR3,20") == [0x1130, 20]
        assert _asm_words("      LAD   GR1,5") == [0x1210, 5]
        assert _asm_words("      ADDA  GR2,#0030,GR7") == [0x2027, 0x0030]
        assert _asm_words("      CPA   GR1,#0010") == [0x4010, 0x0010]
        assert _asm_words("      AND   GR1,#0010") == [0x3010, 0x0010]

    def test_jumps(self):
        assert _asm_words("      JUMP  #0030") == [0x6400, 0x0030]
        assert _asm_words("      JUMP  #0030,GR2") == [0x6402, 0x0030]
        assert _asm_words("      JZE   4") == [0x6300, 4]
        assert _asm_words("      JMI   4") == [0x6100, 4]
        assert _asm_words("      JPL   4") == [0x6500, 4]
        assert _asm_words("      JNZ   4") == [0x6200, 4]

    def test_no_operand(self):
        assert _asm_words("      RET") == [0x8100]
        assert _asm_words("      NOP") == [0x0000]

    def test_in_out_macros(self):
        src = ("      IN    BUF,LEN\n"
               "      OUT   BUF,LEN\n"
               "      RET\n"
               "LEN   DS    1\n"
               "BUF   DS    1\n")
        assert _asm_words(src) == [0xF001, 8, 7, 0xF002, 8, 7, 0x8100, 0, 0]

    def test_raw_svc(self):
        assert _asm_words("      SVC   2,#0100,#0110") == [0xF002, 0x0100, 0x0110]


class TestPseudoInstructions:
    def test_start_end_take_no_space(self):
        assert _asm_words("PROG  START\n      RET\n      END") == [0x8100]

    def test_dc_forms(self):
        src = ("      DC    12\n"
               "      DC    -3\n"
               "      DC    #00FF\n"
               "      DC    'A'\n"
               "      DC    HERE\n"
               "HERE  DS    5\n")
        assert _asm_words(src) == [12, -3, 0xFF, 65, 5, 0]

    def test_dc_hex_is_a_signed_word(self):
        assert _asm_words("      DC    #FFFF\n      DC    #8000\n      DC    #7FFF") == \
            [-1, -0x8000, 0x7FFF]

    def test_hex_address_stays_unsigned(self):
        assert _asm_words("      JUMP  #8000") == [0x6400, 0x8000]

    def test_ds_is_one_word(self):
        mem, compiler = assemble("A     DS    10\nB     DS    1")
        assert compiler.labels == {'A': 0, 'B': 1}
        assert compiler.address == 2

    def test_dc_long_string_rejected(self):
        with pytest.raises(InvalidOperand):
            assemble("      DC    'AB'")

    def test_unsupported_macro(self):
        with pytest.raises(InvalidPseudoInstruction):
            assemble("      RPUSH")

    def test_start_entry_label(self):
        src = ("PROG  START BEGIN\n"
               "DATA  DC    7\n"
               "BEGIN LD    GR1,DATA\n"
               "      RET\n"
               "      END\n")
        mem, compiler = assemble(src)
        assert compiler.entry_address() == 1
        assert compiler.labels['PROG'] == 0

    def test_entry_defaults_to_start_line(self):
        mem, compiler = assemble("      DC 1\nPROG  START\n      RET", base_addr=0x10)
        assert compiler.entry_address() == 0x11

    def test_entry_defaults_to_base(self):
        mem, compiler = assemble("      RET", base_addr=0x40)
        assert compiler.entry_address() == 0x40


class TestTwoPass:
    def test_forward_reference(self):
        """JUMP L1 at 0, L1 at 10 — operand patched in pass 2."""
        source = [['', 'JUMP', 'L1', '', '']]
        source += [['', 'NOP', '', '', '']] * 8
        source += [['L1', 'RET', '', '', '']]
        mem = Memory()
        labels = {}
        Compiler(mem, 0, source, labels).compile()
        assert labels['L1'] == 10
        assert mem.read(0) == 0x6400
        assert mem.read(1) == 10

    def test_backward_reference(self):
        words = _asm_words("LOOP  NOP\n      JUMP  LOOP")
        assert words == [0x0000, 0x6400, 0]

    def test_base_address(self):
        words = _asm_words("      JUMP  L1\nL1    RET", base=0x100)
        assert words == [0x6400, 0x102, 0x8100]

    def test_literals_are_pooled_and_shared(self):
        src = ("      LD    GR1,=5\n"
               "      LD    GR2,=5\n"
               "      LD    GR3,=#000A\n"
               "      RET\n")
        assert _asm_words(src) == [0x1010, 7, 0x1020, 7, 0x1030, 8, 0x8100, 5, 10]

    def test_char_literal(self):
        assert _asm_words("      LD    GR1,='A'\n      RET") == [0x1010, 3, 0x8100, 65]

    def test_address_map(self):
        src = [['', 'LD', 'GR1', 'X', ''], ['', 'RET', '', '', ''], ['X', 'DC', '3', '', '']]
        addr_map = Compiler(Memory(), 0, src, {}).compile()
        assert addr_map == {0: 0, 1: 0, 2: 1, 3: 2}

    def test_resolution_is_idempotent(self):
        src = parse_source("      JUMP  B\n      JZE   A\nA     NOP\nB     RET")
        mem = Memory()
        compiler = Compiler(mem, 0, src, {})
        compiler.compile()
        first = mem.dump()
        resolve_references(mem, compiler.labels, compiler.unresolved)
        assert mem.dump() == first
        resolve_references(mem, compiler.labels, list(reversed(compiler.unresolved)))
        assert mem.dump() == first

    def test_caller_label_table_is_filled(self):
        labels = {}
        Compiler(Memory(), 0, parse_source("A     NOP\nB     RET"), labels).compile()
        assert labels == {'A': 0, 'B': 1}

    def test_literals_stay_out_of_label_table(self):
        labels = {}
        Compiler(Memory(), 0, parse_source("A     LD    GR1,=5\n      RET"), labels).compile()
        assert labels == {'A': 0}

    def test_compile_twice(self):
        src = parse_source("PROG  START BEGIN\nX     DC    1\nBEGIN LD    GR1,=7\n      RET")
        mem = Memory()
        compiler = Compiler(mem, 0, src, {})
        first = compiler.compile()
        words = mem.dump()
        assert compiler.compile() == first
        assert mem.dump() == words
        assert compiler.labels == {'PROG': 0, 'X': 0, 'BEGIN': 1}
        assert compiler.entry_address() == 1


class TestErrors:
    def test_undefined_mnemonic(self):
        with pytest.raises(UndefinedMnemonic):
            assemble("      FOO   GR1")

    def test_undefined_label(self):
        with pytest.raises(UndefinedLabel) as exc:
            assemble("      JUMP  NOWHERE")
        assert exc.value.label == 'NOWHERE'
        assert exc.value.address == 1

    def test_duplicate_label(self):
        with pytest.raises(DuplicateLabel):
            assemble("A     NOP\nA     RET")

    def test_gr0_is_not_an_index_register(self):
        with pytest.raises(InvalidOperand):
            assemble("      LD    GR1,#0010,GR0")

    def test_missing_register_form(self):
        with pytest.raises(InvalidOperand):
            assemble("      LAD   GR1,GR2")

    def test_register_as_label_name(self):
        with pytest.raises(InvalidOperand):
            assemble("GR1   NOP")

    @pytest.mark.parametrize("text", [
        "      LD    GR1,gr8",
        "      JUMP  GR8",
        "      DC    GR9",
        "GR8   NOP",
    ])
    def test_out_of_range_register_is_not_a_label(self, text):
        with pytest.raises(InvalidOperand):
            assemble(text)

    def test_error_carries_line(self):
        with pytest.raises(AssemblerError) as exc:
            assemble("      NOP\n      BAD")
        assert exc.value.line_num == 2
        assert "BAD" in exc.value.line_text


class TestLineAnalyzer:
    def test_pseudo_classification(self):
        assert LineAnalyzer(['', 'DC', '1', '', '']).is_pseudo
        assert LineAnalyzer(['', 'IN', 'A', 'B', '']).is_pseudo
        assert not LineAnalyzer(['', 'LD', 'GR1', 'GR2', '']).is_pseudo

    def test_encode_returns_address_token(self):
        assert LineAnalyzer(['', 'LD', 'GR1', 'DATA', 'GR3']).encode() == (0x1013, 'DATA')
        assert LineAnalyzer(['', 'LD', 'GR1', 'GR3', '']).encode() == (0x1413, None)
