#!/usr/bin/env python3
"""
casl2run — assemble a CASL II program and run it on the COMET II emulator

Usage:
    python casl2run.py <program.cas> [--base #0000] [--interactive]
                                     [--max-steps N] [--dump] [--verbose]

Modes:
    default        run to completion, SVC IN/OUT use the console
    --interactive  single-step: press Enter to execute one instruction;
                   when the program is waiting on IN, the next line typed
                   is handed to it as input

Examples:
    python casl2run.py hello.cas
    python casl2run.py count.cas --interactive
    python casl2run.py loop.cas --max-steps 10000 --dump
"""

import argparse
import logging
import sys

from casl2 import parse_source, Compiler, AssemblerError
from comet2 import (Memory, Registers, Machine, ConsoleIO, BufferedIO,
                    MachineError, __version__)
from comet2.config import DEFAULT_BASE_ADDRESS
from comet2.dump import memory_debug_info, to_word_hex
from comet2.log import setup_logging

log = logging.getLogger("comet2.cli")


def parse_int_arg(value: str) -> int:
    """Parse an integer argument: decimal, 0x... or CASL #... hex."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("#"):
        return int(value[1:], 16)
    return int(value)


def debug_dump(memory, registers, addr_map, source):
    print(memory_debug_info(memory.dump(), addr_map, source))
    print(registers.display())


def run_interactive(machine, io, memory, registers, addr_map, source, stdin=None):
    """Drive the machine one instruction per input line."""
    stdin = stdin or sys.stdin
    session = machine.execute_interactive(machine.regs.PC)
    while True:
        line = stdin.readline()
        if not line:
            break
        if session.awaiting_input:
            session.provide_input(line.rstrip('\r\n').strip())
        print(f"PC: {to_word_hex(session.pc)}")
        still_running = session.step()
        for text in io.output:
            print(text)
        io.output.clear()
        if session.awaiting_input:
            print(session.pending_prompt)
            continue
        debug_dump(memory, registers, addr_map, source)
        print("---")
        if not still_running:
            print("Execution finished")
            break


def main():
    parser = argparse.ArgumentParser(
        prog="casl2run",
        description="CASL II assembler and COMET II emulator",
    )
    parser.add_argument("source", help="CASL II source file")
    parser.add_argument("--base", default=None,
                        help="Load address (e.g. #0000, 0x100, 256)")
    parser.add_argument("--interactive", "-i", action="store_true",
                        help="Single-step execution driven by stdin")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Abort after this many instructions")
    parser.add_argument("--dump", action="store_true",
                        help="Print memory and registers after assembly and at exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log assembler and engine details to the console")
    parser.add_argument("--log-file", action="store_true",
                        help="Also write a DEBUG log under ./logs")
    parser.add_argument("--version", action="version",
                        version=f"casl2run {__version__}")

    args = parser.parse_args()

    console_level = logging.DEBUG if args.verbose else logging.WARNING
    for name in ("comet2", "casl2"):
        setup_logging(name, console_level=console_level, log_to_file=args.log_file)

    try:
        with open(args.source, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {args.source}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error reading {args.source}: {e}", file=sys.stderr)
        sys.exit(1)

    base = parse_int_arg(args.base) if args.base else DEFAULT_BASE_ADDRESS
    memory = Memory()
    registers = Registers()

    try:
        source = parse_source(text)
        compiler = Compiler(memory, base, source, {})
        addr_map = compiler.compile()
        entry = compiler.entry_address()
        log.info("Assembled %d words, entry %s", len(memory), to_word_hex(entry))
        if args.dump or args.interactive:
            print("Assembly complete")
            debug_dump(memory, registers, addr_map, source)

        if args.interactive:
            io = BufferedIO()
            machine = Machine(memory, registers, io)
            registers.PC = entry
            run_interactive(machine, io, memory, registers, addr_map, source)
        else:
            machine = Machine(memory, registers, ConsoleIO())
            machine.execute(entry, max_steps=args.max_steps)
            if args.dump:
                debug_dump(memory, registers, addr_map, source)

    except AssemblerError as e:
        print(f"Assembler error: {e}", file=sys.stderr)
        sys.exit(1)
    except MachineError as e:
        print(f"Machine error: {e} (PC={to_word_hex(registers.PC)})", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(2)


if __name__ == "__main__":
    main()
