"""Colima VM management with the docker CLI on top."""

import re
import shutil

from .base import ContainerVM, probe, run_step

DOCKER_INFO_FIELDS = re.compile(r"Server Version|Operating System|Architecture|CPUs|Total Memory")


def start_args(cpu: int, memory: int, disk: int, apple_silicon: bool, vm_type: str = "vz") -> list[str]:
    """Command line for ``colima start``."""
    args = ["colima", "start"]
    if apple_silicon:
        args += ["--arch", "aarch64"]
    args += ["--cpu", str(cpu), "--memory", str(memory), "--disk", str(disk)]
    if apple_silicon:
        args += [
            "--vm-type", vm_type,
            "--vz-rosetta",
            "--mount-type", "virtiofs",
            "--network-address",
        ]
    return args


class ColimaVM(ContainerVM):
    def __init__(self, vm_type: str = "vz"):
        self.vm_type = vm_type

    def is_installed(self) -> bool:
        return shutil.which("colima") is not None

    def version(self) -> str:
        result = probe(["colima", "version"], timeout=10)
        if result is None or not result.stdout:
            return "unknown"
        return result.stdout.splitlines()[0]

    def is_running(self) -> bool:
        result = probe(["colima", "status"])
        return result is not None and result.returncode == 0

    def status(self) -> str:
        result = probe(["colima", "status"])
        if result is None:
            return ""
        # colima writes its status to stderr
        return (result.stdout + result.stderr).strip()

    def start(self, cpu: int, memory: int, disk: int, apple_silicon: bool = True):
        run_step(start_args(cpu, memory, disk, apple_silicon, self.vm_type), "Start Colima")

    def stop(self):
        run_step(["colima", "stop"], "Stop Colima")

    def delete(self):
        run_step(["colima", "delete", "--force"], "Delete Colima VM")

    def docker_connected(self) -> bool:
        result = probe(["docker", "info"], timeout=30)
        return result is not None and result.returncode == 0

    def docker_info(self) -> str:
        result = probe(["docker", "info"], timeout=30)
        if result is None:
            return ""
        return "\n".join(line for line in result.stdout.splitlines() if DOCKER_INFO_FIELDS.search(line))

    def run_test_container(self) -> bool:
        result = probe(["docker", "run", "--rm", "hello-world"])
        return result is not None and result.returncode == 0

    def buildx_available(self) -> bool:
        result = probe(["docker", "buildx", "version"], timeout=10)
        return result is not None and result.returncode == 0
