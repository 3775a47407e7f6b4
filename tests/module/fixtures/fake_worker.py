"""Scripted stand-in for a worker process.

Usage: fake_worker.py MODE [COUNT]

Modes:
    echo          answer every invocation with its method and args
    reverse       hold COUNT invocations, then answer them in reverse order
    crash         exit with status 3 once COUNT invocations are pending
    crash-on-run  answer like echo, but exit with status 3 on "run"
    stubborn      never answer and ignore exit requests
    log           send a log and an event message, then behave like echo

Invoking "fail" in echo mode answers with an error.
"""

import json
import signal
import sys
import time


def send(message: dict) -> None:
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def answer(message: dict, retval: object) -> None:
    if message["method"] == "fail":
        send(
            {
                "type": "invoke:result",
                "callId": message["callId"],
                "method": message["method"],
                "error": {"name": "ValueError", "message": "bad input", "stack": []},
            }
        )
        return
    send(
        {
            "type": "invoke:result",
            "callId": message["callId"],
            "method": message["method"],
            "retval": retval,
        }
    )


def main() -> None:
    mode = sys.argv[1]
    count = int(sys.argv[2]) if len(sys.argv) > 2 else 3
    held: list[dict] = []

    if mode == "stubborn":
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
        while True:
            time.sleep(1)

    if mode == "log":
        send(
            {
                "type": "log",
                "time": "2099-01-01T12:00:00Z",
                "level": "WARN",
                "msg": "disk almost full",
                "src": "engine",
            }
        )
        send(
            {
                "type": "event",
                "name": "feature:before",
                "payload": {
                    "uri": "/specs/checkout.feature",
                    "feature": {"name": "Checkout", "location": {"line": 1}},
                },
            }
        )

    while line := sys.stdin.readline():
        message = json.loads(line)
        if message["type"] == "exit":
            sys.exit(message.get("status") or 0)

        if mode == "reverse":
            held.append(message)
            if len(held) == count:
                for pending in reversed(held):
                    answer(pending, pending["args"][0])
                held.clear()
        elif mode == "crash":
            held.append(message)
            if len(held) == count:
                sys.exit(3)
        elif mode == "crash-on-run" and message["method"] == "run":
            sys.exit(3)
        else:
            answer(message, {"method": message["method"], "args": message["args"]})


if __name__ == "__main__":
    main()
