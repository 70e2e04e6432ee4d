import bisect
from abc import ABC, abstractmethod
from contextlib import nullcontext
from typing import TypeVar, Generic, Callable, Any, Optional

from readerwriterlock.rwlock import RWLockWrite

ModelType = TypeVar("ModelType")
KeyType = TypeVar("KeyType")
ValueType = TypeVar("ValueType")

KeyPredicate = Callable[[ModelType], Optional[KeyType]]


# Lookup structure kept alongside a table so that reads never have to touch the underlying storage
# When a lock is shared with the owning table, the table must hold the write side for every change
class Index(ABC, Generic[ModelType, KeyType, ValueType]):
    def __init__(self, keys: KeyPredicate | list[KeyPredicate], shared_lock: RWLockWrite = None):
        self._keys = keys.copy() if isinstance(keys, list) else [keys]
        self._data: dict[KeyType, ValueType] = {}

        if shared_lock:
            self._read_lock = shared_lock
            self._write_lock = None
        else:
            self._read_lock = self._write_lock = RWLockWrite()

    def raw(self) -> dict[KeyType, ValueType]:
        with self._read_lock.gen_rlock():
            return self._data.copy()

    def get(self, key: KeyType) -> Optional[ValueType]:
        with self._read_lock.gen_rlock():
            return self._get_inner(key)

    # For use while the shared lock is already held for writing
    def get_for_writing(self, key: KeyType) -> Optional[ValueType]:
        with self._writing():
            return self._get_inner(key)

    def insert_all(self, models: list[ModelType]) -> None:
        with self._writing():
            for model in models:
                self._insert_inner(model)

    def update_all(self, changes: list[tuple[ModelType, ModelType]]) -> None:
        if not changes:
            return

        with self._writing():
            for old, _ in changes:
                self._delete_inner(old)
            for _, new in changes:
                self._insert_inner(new)

    def delete_all(self, models: list[ModelType]) -> None:
        with self._writing():
            for model in models:
                self._delete_inner(model)

    def reset(self, initial: list[ModelType] = None) -> None:
        with self._writing():
            self._data = {}
            for model in initial or []:
                self._insert_inner(model)

    def _writing(self):
        return self._write_lock.gen_wlock() if self._write_lock else nullcontext()

    def _get_inner(self, key: KeyType) -> Optional[ValueType]:
        return self._data.get(key)

    def _keys_of(self, model: ModelType) -> list[KeyType]:
        return [key for key in (predicate(model) for predicate in self._keys) if key is not None]

    @abstractmethod
    def _insert_inner(self, model: ModelType) -> None:
        pass

    @abstractmethod
    def _delete_inner(self, model: ModelType) -> None:
        pass


class UniqueIndex(
    Index[ModelType, KeyType, ModelType]
):
    def _insert_inner(self, model: ModelType) -> None:
        for key in self._keys_of(model):
            self._data[key] = model

    def _delete_inner(self, model: ModelType) -> None:
        for key in self._keys_of(model):
            self._data.pop(key, None)


# Every bucket is a list kept in order by the sorter; models that sort equally keep their insertion order
class SortedBucketIndex(
    Index[ModelType, KeyType, list[ModelType]]
):
    def __init__(self, keys: KeyPredicate | list[KeyPredicate], sorter: Callable[[ModelType], Any], shared_lock: RWLockWrite = None):
        super().__init__(keys, shared_lock)
        self._sorter = sorter

    def _get_inner(self, key: KeyType) -> Optional[list[ModelType]]:
        bucket = self._data.get(key)
        return bucket.copy() if bucket is not None else None

    def _insert_inner(self, model: ModelType) -> None:
        for key in self._keys_of(model):
            bucket = self._data.setdefault(key, [])
            if model in bucket:
                continue

            bisect.insort_right(bucket, model, key=self._sorter)

    def _delete_inner(self, model: ModelType) -> None:
        for key in self._keys_of(model):
            bucket = self._data.get(key)
            if not bucket or model not in bucket:
                continue

            bucket.remove(model)
            if not bucket:
                del self._data[key]
