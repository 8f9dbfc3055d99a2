import logging
import os
import sys
from collections.abc import Iterable
from typing import TextIO

from logkv import LogKVError, Store

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger()

HELP = """commands:
  set <key> <value>
  get <key>
  del <key>
  compact
  exit"""


def handle(store: Store, line: str, out: TextIO) -> bool:
    """
    Run one command line against the store.

    Returns:
        False when the session should end.
    """
    parts = line.split()
    if not parts:
        return True

    cmd = parts[0].lower()
    try:
        if cmd == "help":
            print(HELP, file=out)
        elif cmd == "set":
            if len(parts) < 3:
                print("usage: set <key> <value>", file=out)
            else:
                value = line.split(None, 2)[2].strip()
                store.set(parts[1].encode("utf-8"), value.encode("utf-8"))
                print("OK", file=out)
        elif cmd == "get":
            if len(parts) != 2:
                print("usage: get <key>", file=out)
            else:
                value = store.get(parts[1].encode("utf-8"))
                if value is None:
                    print("(nil)", file=out)
                else:
                    print(value.decode("utf-8", errors="replace"), file=out)
        elif cmd == "del":
            if len(parts) != 2:
                print("usage: del <key>", file=out)
            else:
                store.delete(parts[1].encode("utf-8"))
                print("OK", file=out)
        elif cmd == "compact":
            print("Compacting log...", file=out)
            store.compact()
            print("Compact done.", file=out)
        elif cmd in ("exit", "quit"):
            print("bye", file=out)
            return False
        else:
            print(f"unknown command: {cmd}", file=out)
            print(HELP, file=out)
    except (OSError, LogKVError) as e:
        print(f"{cmd} error: {e}", file=out)
    return True


def run(store: Store, lines: Iterable[str], out: TextIO, prompt: str = "> ") -> None:
    print(HELP, file=out)
    print(prompt, end="", file=out, flush=True)
    for line in lines:
        if not handle(store, line.strip(), out):
            return
        print(prompt, end="", file=out, flush=True)


def main() -> None:
    path = os.environ.get("LOGKV_PATH", "db.log")
    try:
        store = Store.open(path)
    except (OSError, LogKVError) as e:
        logger.critical(f"open db: {e}")
        sys.exit(1)

    with store:
        print("logkv - append-only log backed key-value store")
        run(store, sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
