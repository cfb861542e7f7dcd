"""Shared fixtures: an in-memory communicator for multi-rank tests."""

import threading

import pytest


class ThreadGroup:
    """State shared by the ranks of a :class:`ThreadComm` group."""

    def __init__(self, size, reverse=False):
        self.size = size
        self.reverse = reverse
        self.barrier = threading.Barrier(size, timeout=60)
        self.slots = [None] * size
        self.n_gathers = 0


class ThreadComm:
    """Implements the subset of the mpi4py communicator API used by sfgrid.

    One thread per rank; ``gather`` blocks until every rank has contributed.
    With ``reverse=True`` the root receives the contributions in reverse
    rank order.
    """

    def __init__(self, group, rank):
        self.group = group
        self.rank = rank

    def Get_rank(self):  # noqa: N802
        return self.rank

    def Get_size(self):  # noqa: N802
        return self.group.size

    def gather(self, obj, root=0):
        self.group.slots[self.rank] = obj
        self.group.barrier.wait()
        result = None
        if self.rank == root:
            result = list(self.group.slots)
            if self.group.reverse:
                result.reverse()
            self.group.n_gathers += 1
        self.group.barrier.wait()
        return result


def run_on_threads(size, target, reverse=False):
    """Call ``target(comm)`` on *size* threads; return results and the group."""
    group = ThreadGroup(size, reverse=reverse)
    results = [None] * size
    errors = []

    def worker(rank):
        try:
            results[rank] = target(ThreadComm(group, rank))
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
            group.barrier.abort()

    threads = [threading.Thread(target=worker, args=(r,)) for r in range(size)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return results, group


@pytest.fixture
def thread_ranks():
    return run_on_threads
