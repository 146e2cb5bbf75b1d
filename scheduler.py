# scheduler.py
# Game-loop timers. Nothing here reads the wall clock: the owner feeds elapsed
# seconds through advance(dt), so a paused game simply stops feeding time.
import itertools
import logging

logger = logging.getLogger(__name__)


class Task:
    def __init__(self, due, callback, interval=None, name=None):
        self.due = due
        self.callback = callback
        self.interval = interval      # None for one-shot tasks
        self.name = name or getattr(callback, "__name__", "task")
        self.cancelled = False
        self.fired = 0

    @property
    def periodic(self):
        return self.interval is not None

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        kind = f"every {self.interval}s" if self.periodic else "once"
        state = " cancelled" if self.cancelled else ""
        return f"<Task {self.name} {kind} due={self.due:.2f}{state}>"


class Scheduler:
    def __init__(self):
        self.now = 0.0
        self._tasks = []
        self._order = itertools.count()
        self._seq = {}

    def call_every(self, interval, callback, name=None):
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._add(Task(self.now + interval, callback, interval, name))

    def call_later(self, delay, callback, name=None):
        if delay < 0:
            raise ValueError("delay cannot be negative")
        return self._add(Task(self.now + delay, callback, None, name))

    def _add(self, task):
        self._tasks.append(task)
        self._seq[id(task)] = next(self._order)
        return task

    def remaining(self, task):
        return max(0.0, task.due - self.now)

    def advance(self, dt):
        """
        Move time forward by dt seconds and run everything that came due,
        earliest first. A frame longer than an interval runs the task once
        per elapsed interval.
        """
        target = self.now + max(0.0, dt)

        while True:
            task = self._next_due(target)
            if task is None:
                break

            self.now = task.due
            if task.periodic:
                task.due += task.interval
            else:
                task.cancelled = True
            task.fired += 1
            task.callback()

        self.now = target
        self._purge()

    def _next_due(self, target):
        due = [t for t in self._tasks if not t.cancelled and t.due <= target]
        if not due:
            return None
        return min(due, key=lambda t: (t.due, self._seq[id(t)]))

    def _purge(self):
        alive = [t for t in self._tasks if not t.cancelled]
        for t in self._tasks:
            if t.cancelled:
                self._seq.pop(id(t), None)
        self._tasks = alive

    def cancel_all(self):
        for task in self._tasks:
            task.cancel()
        self._purge()

    @property
    def tasks(self):
        return [t for t in self._tasks if not t.cancelled]
