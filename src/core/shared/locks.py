"""
Locks por clínica em processo.

Complementa o ``select_for_update`` do adapter de banco: dentro de um
mesmo processo, alternâncias concorrentes da mesma clínica esperam
umas pelas outras antes mesmo de abrir transação.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from .interfaces import TenantLockProvider


class InProcessTenantLockProvider(TenantLockProvider):
    """
    Um ``RLock`` por clínica, criado sob demanda.

    O lock de guarda só protege o dicionário; nunca é mantido
    enquanto a alternância executa, então clínicas diferentes não
    contendem.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, tenant_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[tenant_id] = lock
            return lock

    @contextmanager
    def lock(self, tenant_id: str) -> Iterator[None]:
        lock = self._lock_for(tenant_id)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
