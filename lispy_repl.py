import asyncio
import sys
from pathlib import Path

from lispy import ScriptRunner, Printer, Error

VERSION = "0.0.1"

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def run_script_file(file_path: str):
    """Run a Lispy file as one program and exit with appropriate status."""
    runner = ScriptRunner()
    printer = Printer()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    print(printer.pformat(result.value))
    if isinstance(result.value, Error):
        raise SystemExit(1)

async def main():
    """Run a file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if not arg.startswith("-"):
            run_script_file(arg)
            return

    print(f"Lispy Version {VERSION}")
    print("Press Ctrl+c to exit.")

    runner = ScriptRunner()
    printer = Printer()

    while True:
        try:
            raw = await ainput("lispy> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_script(line)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break

def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")

if __name__ == "__main__":
    run()
