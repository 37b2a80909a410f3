"""Task definitions and registry."""

# Registry of available task classes
_tasks: dict[str, type] = {}


def register_task(cls: type) -> type:
    """Decorator to register a task class."""
    _tasks[cls.name] = cls
    return cls


def get_task_class(name: str) -> type:
    """Get a task class by name."""
    if name not in _tasks:
        available = list(_tasks.keys())
        raise ValueError(f"Unknown task: {name}. Available: {available}")
    return _tasks[name]


def list_tasks() -> list[str]:
    """List available task names."""
    return sorted(_tasks.keys())


# Import tasks to trigger registration
from tasks import instance_actions  # noqa: E402, F401
