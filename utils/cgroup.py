"""cgroup内存限制读取."""

from pathlib import Path

from utils.logger import get_logger

logger = get_logger(__name__)

CGROUP_ROOT = Path("/sys/fs/cgroup")


def _current_cgroup_dir(cgroup_root: Path) -> Path:
    """获取当前进程所在的cgroup v2目录."""
    proc_cgroup = Path("/proc/self/cgroup")
    try:
        for line in proc_cgroup.read_text(encoding="utf-8").splitlines():
            # cgroup v2 格式: "0::/path"
            if line.startswith("0::"):
                relative = line[3:].strip().lstrip("/")
                return cgroup_root / relative if relative else cgroup_root
    except OSError:
        logger.debug("无法读取 %s", proc_cgroup)
    return cgroup_root


def read_memory_limit(cgroup_dir: Path | None = None) -> int | None:
    """读取cgroup v2的 memory.max.

    Args:
        cgroup_dir: cgroup目录,默认为当前进程所在的cgroup

    Returns:
        内存上限(字节);未设置上限("max")或无法读取时返回 None
    """
    if cgroup_dir is None:
        cgroup_dir = _current_cgroup_dir(CGROUP_ROOT)

    memory_max_file = cgroup_dir / "memory.max"
    try:
        value = memory_max_file.read_text(encoding="utf-8").strip()
    except OSError:
        logger.debug("memory.max不可读: %s", memory_max_file)
        return None

    if not value or value == "max":
        return None

    try:
        limit = int(value)
    except ValueError:
        logger.warning("无法解析memory.max: %r", value)
        return None

    return limit if limit > 0 else None
