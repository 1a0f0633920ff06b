"""A tiny MCP server speaking newline-delimited JSON-RPC on stdio.

Used by the protocol client tests. Options:
    --exit-on-init   exit without answering initialize
    --pid-file PATH  write the process id to PATH on start
"""

import json
import os
import sys

TOOLS = [
    {
        "name": "echo",
        "description": "Echo the text argument",
        "inputSchema": {"type": "object", "properties": {"text": {"type": "string"}}},
    },
    {"name": "Echo", "description": "Echo in upper case"},
    {"name": "echo", "description": "Duplicate entry"},
    {"name": "fail", "description": "Always answers with an error"},
    {"name": "broken", "description": "Reports a tool-level error"},
    {"name": "image", "description": "Answers without text blocks"},
    {"name": "quit", "description": "Exits without answering"},
]


def send(message):
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def result(request_id, value):
    send({"jsonrpc": "2.0", "id": request_id, "result": value})


def text(value):
    return {"content": [{"type": "text", "text": value}]}


def handle_call(request_id, params):
    name = params.get("name")
    arguments = params.get("arguments") or {}
    if name == "echo":
        result(request_id, text(str(arguments.get("text", ""))))
    elif name == "Echo":
        result(request_id, text(str(arguments.get("text", "")).upper()))
    elif name == "fail":
        send({"jsonrpc": "2.0", "id": request_id, "error": {"code": -32000, "message": "boom"}})
    elif name == "broken":
        result(request_id, {"content": [{"type": "text", "text": "tool broke"}], "isError": True})
    elif name == "image":
        result(request_id, {"content": [{"type": "image", "data": "AAAA", "mimeType": "image/png"}]})
    elif name == "quit":
        sys.exit(0)
    else:
        send({"jsonrpc": "2.0", "id": request_id, "error": {"code": -32601, "message": "unknown tool"}})


def main():
    args = sys.argv[1:]
    if "--pid-file" in args:
        path = args[args.index("--pid-file") + 1]
        with open(path, "w") as f:
            f.write(str(os.getpid()))

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        message = json.loads(line)
        method = message.get("method")
        request_id = message.get("id")
        if request_id is None:
            continue

        if method == "initialize":
            if "--exit-on-init" in args:
                sys.exit(0)
            # Noise the client has to skip.
            send({"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info"}})
            send({"jsonrpc": "2.0", "id": 9999, "result": {}})
            result(
                request_id,
                {
                    "protocolVersion": message["params"]["protocolVersion"],
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": "fake", "version": "0.0.1"},
                },
            )
        elif method == "tools/list":
            result(request_id, {"tools": TOOLS})
        elif method == "tools/call":
            handle_call(request_id, message.get("params") or {})
        else:
            send({"jsonrpc": "2.0", "id": request_id, "error": {"code": -32601, "message": "no such method"}})


if __name__ == "__main__":
    main()
