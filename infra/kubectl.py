from __future__ import annotations

import subprocess
from typing import Callable, List, Optional, Sequence

import yaml
from loguru import logger

from domain.errors import ResourceError
from domain.ports import ResourceController

Runner = Callable[..., subprocess.CompletedProcess]


class Kubectl:
    """
    Wrapper fino sobre o binário kubectl.
    Qualquer exit code != 0 vira ResourceError (com o stderr).
    """

    def __init__(
        self,
        binary: str = "kubectl",
        *,
        namespace: str = "",
        context: str = "",
        runner: Optional[Runner] = None,
    ):
        self.binary = binary
        self.namespace = namespace
        self.context = context
        self._run = runner or subprocess.run

    def base_args(self) -> List[str]:
        args = [self.binary]
        if self.context:
            args.append(f"--context={self.context}")
        if self.namespace:
            args.append(f"--namespace={self.namespace}")
        return args

    def __call__(self, *args: str, stdin: Optional[str] = None) -> str:
        cmd = self.base_args() + list(args)
        try:
            proc = self._run(
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as e:
            raise ResourceError(f"kubectl {list(args)} failed: {e}") from e

        if proc.returncode != 0:
            raise ResourceError(
                f"kubectl {list(args)} failed: exit status {proc.returncode} {(proc.stderr or '').strip()}"
            )
        return proc.stdout or ""


def pod_manifest(pod_name: str, secret_name: str, *, mount_path: str, image: str) -> str:
    manifest = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": pod_name,
            "labels": {"app": pod_name},
        },
        "spec": {
            "terminationGracePeriodSeconds": 0,
            "containers": [
                {
                    "name": "main",
                    "image": image,
                    "command": ["sleep", "9999999"],
                    "volumeMounts": [
                        {"name": "secret-volume", "mountPath": mount_path, "readOnly": True},
                    ],
                }
            ],
            "volumes": [
                {"name": "secret-volume", "secret": {"secretName": secret_name}},
            ],
        },
    }
    return yaml.safe_dump(manifest, sort_keys=False)


class KubectlResourceController(ResourceController):
    def __init__(
        self,
        kubectl: Kubectl,
        *,
        mount_path: str = "/secrets",
        image: str = "busybox",
        ready_timeout_sec: float = 120.0,
    ):
        self.kubectl = kubectl
        self.mount_path = mount_path
        self.image = image
        self.ready_timeout_sec = ready_timeout_sec

    def create_or_replace_value(self, name: str, key: str, value: str) -> None:
        # create --dry-run + apply = create-or-replace (idempotente)
        rendered = self.kubectl(
            "create", "secret", "generic", name,
            f"--from-literal={key}={value}",
            "--dry-run=client", "-o=yaml",
        )
        self.kubectl("apply", "-f", "-", stdin=rendered)

    def delete_object(self, kind: str, name: str) -> None:
        self.kubectl("delete", kind, name, "--ignore-not-found=true")

    def create_consumer(self, pod_name: str, secret_name: str) -> None:
        self.delete_object("pod", pod_name)
        spec = pod_manifest(pod_name, secret_name, mount_path=self.mount_path, image=self.image)
        out = self.kubectl("apply", "-f", "-", "-o=yaml", stdin=spec)
        logger.debug("pod applied:\n{}", out)

    def wait_ready(self, name: str) -> None:
        self.kubectl(
            "wait", "--for=condition=Ready", f"pod/{name}",
            f"--timeout={int(self.ready_timeout_sec)}s",
        )


def exec_args(kubectl: Kubectl, pod_name: str, script: str) -> Sequence[str]:
    return kubectl.base_args() + ["exec", pod_name, "--", "sh", "-c", script]
