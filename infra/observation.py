from __future__ import annotations

import shlex
import subprocess
from typing import Callable, Iterator, Optional

from loguru import logger

from domain.errors import ResourceError
from domain.ports import ObservationChannel

from .kubectl import Kubectl, exec_args


def poll_script(path: str, interval_sec: float) -> str:
    # echo $(cat ...) garante uma linha por leitura, mesmo com o arquivo ainda ausente
    return f"while :; do echo $(cat {shlex.quote(path)}); sleep {interval_sec:g}; done"


class KubectlExecChannel(ObservationChannel):
    """
    Lê o valor montado no pod via `kubectl exec` em loop.
    O stream termina quando o processo do exec termina (pod encerrado / conexão caiu).
    """

    def __init__(
        self,
        kubectl: Kubectl,
        *,
        mount_path: str = "/secrets",
        interval_sec: float = 1.0,
        popen: Optional[Callable[..., subprocess.Popen]] = None,
    ):
        self.kubectl = kubectl
        self.mount_path = mount_path.rstrip("/")
        self.interval_sec = interval_sec
        self._popen = popen or subprocess.Popen
        self._proc: Optional[subprocess.Popen] = None

    def open_stream(self, pod_name: str, key: str) -> Iterator[str]:
        script = poll_script(f"{self.mount_path}/{key}", self.interval_sec)
        cmd = exec_args(self.kubectl, pod_name, script)
        try:
            self._proc = self._popen(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=None,  # stderr do kubectl vai direto para o nosso
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise ResourceError(f"kubectl exec {pod_name} failed: {e}") from e

        return self._lines(self._proc)

    @staticmethod
    def _lines(proc: subprocess.Popen) -> Iterator[str]:
        assert proc.stdout is not None
        for raw in proc.stdout:
            yield raw.rstrip("\r\n")

        rc = proc.wait()
        logger.warning("kubectl exec exited with status {}", rc)

    def close(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=3)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
