import threading
from contextlib import contextmanager
from typing import Iterator

_registry_lock = threading.Lock()
_tree_locks: dict[str, threading.RLock] = {}


def _lock_for(tree_id: str) -> threading.RLock:
    with _registry_lock:
        lock = _tree_locks.get(tree_id)
        if lock is None:
            lock = threading.RLock()
            _tree_locks[tree_id] = lock
        return lock


@contextmanager
def tenant_lock(tree_id: str) -> Iterator[None]:
    """
    Serialise structural mutations of one tree inside this process.

    Validation reads and the writes they justify happen under the same
    lock, so two writers cannot both pass a cycle or progenitor check
    against the same stale state.
    """
    lock = _lock_for(tree_id)
    with lock:
        yield
