"""指标报告格式化."""

from core.models import MetricsSnapshot, Prediction

_RULE = "═" * 63
_THIN_RULE = "─" * 63
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_bytes(num_bytes: int) -> str:
    """将字节数格式化为可读字符串(B/KB/MB/GB)."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024**2:
        return f"{num_bytes / 1024:.2f} KB"
    if num_bytes < 1024**3:
        return f"{num_bytes / 1024**2:.2f} MB"
    return f"{num_bytes / 1024**3:.2f} GB"


def _memory_section(snapshot: MetricsSnapshot) -> list[str]:
    memory = snapshot.memory
    return [
        "💾 MEMORY METRICS",
        f"   ├─ Heap Used:        {format_bytes(memory.heap_used)}",
        f"   ├─ Heap Max:         {format_bytes(memory.heap_max)}",
        f"   ├─ Heap Committed:   {format_bytes(memory.heap_committed)}",
        f"   ├─ Non-Heap Used:    {format_bytes(memory.non_heap_used)}",
        f"   └─ Heap Usage:       {memory.heap_usage_percent:.2f}%",
    ]


def _gc_section(snapshot: MetricsSnapshot) -> list[str]:
    gc = snapshot.gc
    if gc.collection_count <= 0:
        return []
    return [
        "🗑️  GARBAGE COLLECTION",
        f"   ├─ Collection Count: {gc.collection_count}",
        f"   ├─ Total GC Time:    {gc.collection_time_ms} ms",
        f"   └─ Last GC Pause:    {gc.last_pause_ms} ms",
    ]


def _thread_section(snapshot: MetricsSnapshot) -> list[str]:
    threads = snapshot.threads
    return [
        "🧵 THREAD METRICS",
        f"   ├─ Current Threads:  {threads.current}",
        f"   ├─ Peak Threads:     {threads.peak}",
        f"   └─ Daemon Threads:   {threads.daemon}",
    ]


def _format_load(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}%"


def _cpu_section(snapshot: MetricsSnapshot) -> list[str]:
    return [
        "⚡ CPU METRICS",
        f"   ├─ Process CPU:      {_format_load(snapshot.cpu.process_load_percent)}",
        f"   └─ System CPU:       {_format_load(snapshot.cpu.system_load_percent)}",
    ]


def _system_memory_section(snapshot: MetricsSnapshot) -> list[str]:
    system_memory = snapshot.system_memory
    if system_memory.total <= 0:
        return []
    return [
        "💿 SYSTEM MEMORY",
        f"   ├─ Used:             {format_bytes(system_memory.used)}",
        f"   ├─ Total:            {format_bytes(system_memory.total)}",
        f"   └─ Usage:            {system_memory.usage_percent:.2f}%",
    ]


def _worker_pool_section(snapshot: MetricsSnapshot) -> list[str]:
    pool = snapshot.worker_pool
    if pool is None:
        return [
            "🔧 WORKER POOL METRICS",
            "   └─ Elastic concurrency (no pool metrics available)",
        ]
    return [
        "🔧 WORKER POOL METRICS",
        f"   ├─ Active Count:     {pool.active_count}",
        f"   ├─ Queue Size:       {pool.queue_size}",
        f"   ├─ Pool Size:        {pool.pool_size}",
        f"   └─ Completed Tasks:  {pool.completed_tasks}",
    ]


def build_metrics_report(snapshot: MetricsSnapshot, prediction: Prediction) -> str:
    """构建多段式指标报告,用于周期性日志输出.

    GC段只在发生过回收时输出,系统内存段只在总量已知时输出.
    """
    sections = (
        _memory_section,
        _gc_section,
        _thread_section,
        _cpu_section,
        _system_memory_section,
        _worker_pool_section,
    )
    lines = [
        "",
        _RULE,
        "📊 RESOURCE METRICS REPORT",
        _RULE,
        f"⏰ Timestamp: {snapshot.timestamp.strftime(_TIME_FORMAT)}",
        f"🎯 Prediction Level: {prediction.level} | Risk Score: {prediction.risk_score:.2f}",
        _THIN_RULE,
    ]
    for section in sections:
        lines.extend(section(snapshot))
    lines.append(_RULE)
    return "\n".join(lines)
