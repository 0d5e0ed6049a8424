"""Shared test fixtures for manifest-audit tests."""

import pytest

from manifest_audit.models.commit import Commit, CommitChange, FileChangeType
from manifest_audit.utils.errors import FileReadError

MANIFEST_PATH = "k8s/web.yaml"

# Lines 1-15: Deployment, 16: separator, 17-25: Service (25 is the empty last line)
BEFORE_MANIFEST = """apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: prod
spec:
  replicas: 2
  template:
    spec:
      containers:
        - name: web
          image: nginx:1.24.0
          env:
            - name: LOG_LEVEL
              value: info
---
apiVersion: v1
kind: Service
metadata:
  name: web
  namespace: prod
spec:
  ports:
    - port: 80
"""

AFTER_MANIFEST = BEFORE_MANIFEST.replace("replicas: 2", "replicas: 5").replace(
    "nginx:1.24.0", "nginx:1.25.0"
)

MODIFY_PATCH = """diff --git a/k8s/web.yaml b/k8s/web.yaml
index 1111111..2222222 100644
--- a/k8s/web.yaml
+++ b/k8s/web.yaml
@@ -4,9 +4,9 @@ metadata:
   name: web
   namespace: prod
 spec:
-  replicas: 2
+  replicas: 5
   template:
     spec:
       containers:
         - name: web
-          image: nginx:1.24.0
+          image: nginx:1.25.0
"""

DEPLOYMENT_ONLY = BEFORE_MANIFEST.split("---\n")[0]

# Removes the separator and the Service (old lines 16-24)
DELETE_SERVICE_PATCH = """diff --git a/k8s/web.yaml b/k8s/web.yaml
--- a/k8s/web.yaml
+++ b/k8s/web.yaml
@@ -13,12 +13,3 @@ spec:
           env:
             - name: LOG_LEVEL
               value: info
----
-apiVersion: v1
-kind: Service
-metadata:
-  name: web
-  namespace: prod
-spec:
-  ports:
-    - port: 80
"""


def added_file_patch(content: str, path: str = MANIFEST_PATH) -> str:
    """Unified diff that adds every line of content."""
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines = lines[:-1]
    body = "\n".join("+" + line for line in lines)
    return (
        f"diff --git a/{path} b/{path}\n"
        "new file mode 100644\n"
        "--- /dev/null\n"
        f"+++ b/{path}\n"
        f"@@ -0,0 +1,{len(lines)} @@\n"
        f"{body}\n"
    )


class InMemoryReader:
    """FileReader backed by a dict of (path, ref) to content."""

    def __init__(self, files: dict[tuple[str, str], str]) -> None:
        self.files = files
        self.reads: list[tuple[str, str]] = []

    def read_file(self, path: str, ref: str) -> str:
        self.reads.append((path, ref))
        try:
            return self.files[(path, ref)]
        except KeyError:
            raise FileReadError(path, ref, "not found") from None


def make_commit(
    patch: str,
    file_type: FileChangeType = FileChangeType.MODIFIED,
    path: str = MANIFEST_PATH,
    **kwargs,
) -> tuple[Commit, CommitChange]:
    """Build a one-file commit and its change."""
    change = CommitChange(file=path, type=file_type, adds=4, dels=4)
    commit = Commit(hash="abc123", patch=patch, changes=[change], **kwargs)
    return commit, change


@pytest.fixture
def before_manifest() -> str:
    return BEFORE_MANIFEST


@pytest.fixture
def after_manifest() -> str:
    return AFTER_MANIFEST


@pytest.fixture
def modify_reader() -> InMemoryReader:
    """Reader serving the manifest before and after a scale + image bump."""
    return InMemoryReader(
        {
            (MANIFEST_PATH, "abc123^"): BEFORE_MANIFEST,
            (MANIFEST_PATH, "abc123"): AFTER_MANIFEST,
        }
    )


@pytest.fixture
def sample_severity_file(tmp_path) -> str:
    """Create a sample severity rules file for testing."""
    content = """
default: low
rules:
  'kubernetes.kind == "ConfigMap"': info
  'kubernetes.replica_delta > 2': critical
  'change.file.startsWith("prod/")': high
"""
    path = tmp_path / "severity.yaml"
    path.write_text(content)
    return str(path)
