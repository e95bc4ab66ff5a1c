import threading

from githeus.models import BillingItem, Entity, Runner


class DeduplicationStore:
    """
    DeduplicationStore: Is a thread-safe store for tracking the
    records already emitted during one collect call.

    The first record with a given key wins; later records with the
    same key are reported as duplicates and must be dropped, never
    merged. A new store is created for every collect call.
    """

    def __init__(self) -> "None":
        self._lock: "threading.Lock" = threading.Lock()
        self._seen: "set[str]" = set()

    @staticmethod
    def make_key(*parts: "str | int") -> "str":
        """
        constructs a composite key from the given parts.
        """
        return "|".join(str(p) for p in parts)

    def is_new(self, key: "str") -> "bool":
        """
        checks if the given key is new. If so, mark it as seen
        and returns True.
        """
        with self._lock:
            if key in self._seen:
                return False

            self._seen.add(key)
            return True

    def __len__(self) -> "int":
        with self._lock:
            return len(self._seen)


def billing_key(item: "BillingItem") -> "str":
    return DeduplicationStore.make_key(
        item.type,
        item.name,
        item.usage.product,
        item.usage.sku,
        item.usage.date,
    )


def runner_key(scope: "Entity", runner: "Runner") -> "str":
    return DeduplicationStore.make_key(scope.kind.value, scope.name, runner.id)
