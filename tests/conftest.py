import json
import logging
import os
import stat
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

FAKE_KWCTL = """#!{python}
import base64
import json
import logging
import os
import sys
import time

args = sys.argv[1:]
if not args or args[0] != "run":
    print("usage: kwctl run --request-path <file> <policy>", file=sys.stderr)
    sys.exit(64)
request_path = args[args.index("--request-path") + 1]
if os.environ.get("FAKE_KWCTL_SLEEP"):
    time.sleep(float(os.environ["FAKE_KWCTL_SLEEP"]))
exit_code = int(os.environ.get("FAKE_KWCTL_EXIT", "0"))
if exit_code:
    print("Error: policy evaluation failed", file=sys.stderr)
    sys.exit(exit_code)

with open(request_path, encoding="utf-8") as f:
    doc = json.load(f)
request = doc.get("request") or doc
labels = ((request.get("object") or {{}}).get("metadata") or {{}}).get("labels") or {{}}
allowed = labels.get("deny") != "true"
print("INFO policy evaluation started", file=sys.stderr)
response = {{"uid": request.get("uid", ""), "allowed": allowed}}
if not allowed:
    response["status"] = {{"message": "request denied by label"}}
elif "--settings-path" in args:
    ops = [{{"op": "replace", "path": "/spec/containers/0/image", "value": "mirror/nginx"}}]
    response["patchType"] = "JSONPatch"
    response["patch"] = base64.b64encode(json.dumps(ops).encode()).decode()
print(json.dumps(response, separators=(",", ":")))
"""

NOISY_KWCTL = """#!{python}
import sys

sys.stdout.buffer.write(b"\\xff\\xfe log\\n{{\\"allowed\\":true}}\\n")
"""

SLOW_KWCTL = """#!{python}
import time

print("INFO evaluating request", flush=True)
time.sleep(30)
"""


def _write_tool(path, template):
    path.write_text(template.format(python=sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def _pod_request(name, labels=None, containers=None):
    return {
        "uid": f"uid-{name}",
        "kind": {"group": "", "version": "v1", "kind": "Pod"},
        "operation": "CREATE",
        "object": {
            "kind": "Pod",
            "apiVersion": "v1",
            "metadata": {"name": name, "namespace": "default", "labels": labels or {}},
            "spec": {"containers": containers or [{"name": "nginx", "image": "nginx"}]},
        },
    }


@pytest.fixture
def fake_kwctl(tmp_path):
    return _write_tool(tmp_path / "kwctl", FAKE_KWCTL)


@pytest.fixture
def noisy_kwctl(tmp_path):
    return _write_tool(tmp_path / "kwctl-noisy", NOISY_KWCTL)


@pytest.fixture
def slow_kwctl(tmp_path):
    return _write_tool(tmp_path / "kwctl-slow", SLOW_KWCTL)


@pytest.fixture
def policy_file(tmp_path):
    path = tmp_path / "annotated-policy.wasm"
    path.write_bytes(b"\x00asm\x01\x00\x00\x00")
    return str(path)


@pytest.fixture
def allowed_fixture(tmp_path):
    path = tmp_path / "pod_creation.json"
    path.write_text(json.dumps(_pod_request("nginx")), encoding="utf-8")
    return str(path)


@pytest.fixture
def denied_fixture(tmp_path):
    path = tmp_path / "pod_denied.json"
    path.write_text(json.dumps(_pod_request("blocked", labels={"deny": "true"})), encoding="utf-8")
    return str(path)


@pytest.fixture
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("POLICY_HARNESS_") or key.startswith("FAKE_KWCTL_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def _reset_harness_logger():
    # the CLI attaches a stderr handler; CliRunner swaps stderr per invocation
    logger = logging.getLogger("policy_harness")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
