"""Child-process entry for sandboxed evaluation.

This file is executed as ``python -I -c <source>`` by the sandbox and is never
imported by the server. It reads one JSON job from stdin, applies resource
limits, evaluates the submission as a single expression with restricted
builtins, calls it with the job's arguments and writes one JSON result line
to stdout.
"""

import ast
import builtins
import json
import sys

SAFE_BUILTINS = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "chr", "dict", "divmod", "enumerate",
        "filter", "float", "frozenset", "int", "isinstance", "len", "list",
        "map", "max", "min", "ord", "pow", "range", "reversed", "round",
        "set", "slice", "sorted", "str", "sum", "tuple", "zip",
    )
}

BLOCKED_ATTRIBUTES = {
    "format", "format_map", "mro",
    "gi_frame", "gi_code", "cr_frame", "cr_code", "ag_frame", "ag_code",
    "f_globals", "f_locals", "f_builtins", "f_back", "tb_frame",
}

MAX_OUTPUT_BYTES = 1_000_000


def emit(payload):
    out = sys.__stdout__
    out.write(json.dumps(payload))
    out.write("\n")
    out.flush()


def apply_limits(memory_limit_mb, cpu_seconds):
    if sys.platform == "win32":
        return
    import resource

    memory = memory_limit_mb * 1024 * 1024
    resource.setrlimit(resource.RLIMIT_AS, (memory, memory))
    resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds))
    resource.setrlimit(resource.RLIMIT_FSIZE, (0, 0))


def check_tree(tree):
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            if node.attr.startswith("_") or node.attr in BLOCKED_ATTRIBUTES:
                return f"forbidden attribute: {node.attr}"
        elif isinstance(node, ast.Name) and node.id.startswith("__"):
            return f"forbidden name: {node.id}"
    return None


def main():
    job = json.loads(sys.stdin.read())
    sys.stdin.close()

    try:
        tree = ast.parse(job["code"], mode="eval")
    except (SyntaxError, ValueError) as e:
        emit({"status": "error", "kind": "syntax_error", "detail": str(e)})
        return

    problem = check_tree(tree)
    if problem:
        emit({"status": "error", "kind": "forbidden", "detail": problem})
        return

    code = compile(tree, "<submission>", "eval")
    apply_limits(job["memory_limit_mb"], job["cpu_seconds"])

    try:
        func = eval(code, {"__builtins__": SAFE_BUILTINS}, {})
        value = func(*job["args"])
        encoded = json.dumps(value)
    except Exception as e:
        emit({"status": "error", "kind": "runtime_error", "detail": f"{type(e).__name__}: {e}"})
        return

    if len(encoded) > MAX_OUTPUT_BYTES:
        emit({"status": "error", "kind": "output_too_large", "detail": str(len(encoded))})
        return

    sys.__stdout__.write('{"status": "ok", "value": ' + encoded + "}\n")
    sys.__stdout__.flush()


main()
