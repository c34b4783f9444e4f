"""Resource allocation advisor for the Colima VM.

Sizes the container VM so it can coexist with a running Ollama server
without starving macOS. Pure functions only: callers gather the inputs
(see ``system.SystemProbe``) and decide what to do with the result.
"""

from dataclasses import dataclass, field, fields

from .errors import HeadlessMacError

LOW_RAM_WITH_INFERENCE = "Low available RAM - recommend at least 16GB total for Ollama + Colima"
LOW_RAM = "Low available RAM - Colima will get the minimum allocation"


@dataclass(frozen=True)
class AdvisorSettings:
    os_reserved_ram_gb: int = 4
    os_reserved_cpu: int = 2
    inference_buffer_gb: int = 2
    inference_fallback_ram_gb: int = 8
    default_cpu: int = 4
    default_ram_gb: int = 16
    default_disk_gb: int = 100
    min_ram_gb: int = 4
    min_cpu: int = 2

    @classmethod
    def from_config(cls, config: dict) -> "AdvisorSettings":
        """Build settings from the ``[advisor]`` config section, ignoring unknown keys."""
        section = config.get("advisor", {})
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in section.items():
            if key not in known:
                continue
            try:
                values[key] = int(value)
            except (TypeError, ValueError):
                raise HeadlessMacError(
                    f"invalid [advisor] setting {key} = {value!r}: expected a whole number",
                    step="load config",
                ) from None
        return cls(**values)


@dataclass(frozen=True)
class SystemResources:
    total_ram_gb: int
    total_cpu_cores: int


@dataclass(frozen=True)
class InferenceWorkloadEstimate:
    running: bool
    estimated_ram_gb: int
    from_observation: bool = False


@dataclass
class ResourceRecommendation:
    cpu_cores: int
    ram_gb: int
    disk_gb: int
    warnings: list[str] = field(default_factory=list)


def estimate_inference_workload(
    running: bool,
    observed_ram_gb: int | None = None,
    settings: AdvisorSettings | None = None,
) -> InferenceWorkloadEstimate:
    """Estimate how much RAM the inference server needs.

    Observed resident memory plus a buffer when it could be read, otherwise
    the fixed fallback. An unreadable or zero observation is not an error.
    """
    settings = settings or AdvisorSettings()
    if not running:
        return InferenceWorkloadEstimate(running=False, estimated_ram_gb=0)
    if observed_ram_gb:
        return InferenceWorkloadEstimate(
            running=True,
            estimated_ram_gb=observed_ram_gb + settings.inference_buffer_gb,
            from_observation=True,
        )
    return InferenceWorkloadEstimate(running=True, estimated_ram_gb=settings.inference_fallback_ram_gb)


def recommend_resources(
    resources: SystemResources,
    workload: InferenceWorkloadEstimate,
    settings: AdvisorSettings | None = None,
) -> ResourceRecommendation:
    """Recommend CPU/RAM/disk for the Colima VM.

    Results are always within [minimum, physical total]. Disk is a constant
    default and does not depend on capacity.
    """
    settings = settings or AdvisorSettings()
    warnings = []

    available_ram = resources.total_ram_gb - settings.os_reserved_ram_gb
    available_cpu = resources.total_cpu_cores - settings.os_reserved_cpu

    if workload.running:
        ram = available_ram - workload.estimated_ram_gb
        cpu = available_cpu
        if ram <= settings.min_ram_gb:
            warnings.append(LOW_RAM_WITH_INFERENCE)
    else:
        ram = min(available_ram, settings.default_ram_gb)
        cpu = min(available_cpu, settings.default_cpu)
        if ram <= settings.min_ram_gb:
            warnings.append(LOW_RAM)

    ram = min(max(ram, settings.min_ram_gb), resources.total_ram_gb)
    cpu = min(max(cpu, settings.min_cpu), resources.total_cpu_cores)

    return ResourceRecommendation(
        cpu_cores=cpu,
        ram_gb=ram,
        disk_gb=settings.default_disk_gb,
        warnings=warnings,
    )


def format_recommendation(
    resources: SystemResources,
    workload: InferenceWorkloadEstimate,
    recommendation: ResourceRecommendation,
    settings: AdvisorSettings | None = None,
) -> list[str]:
    """Human-readable lines explaining a recommendation."""
    settings = settings or AdvisorSettings()
    lines = [
        f"Total RAM: {resources.total_ram_gb}GB",
        f"Total CPU: {resources.total_cpu_cores} cores",
    ]
    if workload.running:
        source = "observed + buffer" if workload.from_observation else "default estimate"
        left_cpu = resources.total_cpu_cores - recommendation.cpu_cores
        lines.append(f"Ollama is running, estimated RAM usage: {workload.estimated_ram_gb}GB ({source})")
        lines.append("Recommended Colima resources (with Ollama):")
        lines.append(f"  CPU: {recommendation.cpu_cores} cores (leaving {left_cpu} for Ollama/system)")
        lines.append(
            f"  RAM: {recommendation.ram_gb}GB (leaving {workload.estimated_ram_gb}GB for Ollama"
            f" + {settings.os_reserved_ram_gb}GB for system)"
        )
    else:
        lines.append("Ollama is not running")
        lines.append("Recommended Colima resources:")
        lines.append(f"  CPU: {recommendation.cpu_cores} cores")
        lines.append(f"  RAM: {recommendation.ram_gb}GB")
    lines.append(f"  Disk: {recommendation.disk_gb}GB")
    return lines
