"""
File-backed registry of deployed contracts.

Records live in a single JSON array on disk. The in-memory cache is reloaded
whenever the file's mtime moves, so edits made by another process are picked up.
File access runs in a worker thread and is serialized by one lock per registry.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from ..config import settings


logger = logging.getLogger(__name__)


@dataclass
class ContractRecord:
    """A contract deployed through the wallet session."""
    contract_address: Optional[str]
    contract_name: Optional[str]
    abi: List[Dict[str, Any]]
    network_name: Optional[str]
    user_address: Optional[str]
    deploy_tx_hash: Optional[str] = None
    file_name: Optional[str] = None
    constructor_args: List[Any] = field(default_factory=list)
    bytecode_hash: Optional[str] = None
    bytecode_length: int = 0
    id: str = ""
    saved_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "savedAt": self.saved_at,
            "userAddress": self.user_address,
            "networkName": self.network_name,
            "fileName": self.file_name,
            "contractName": self.contract_name,
            "abi": self.abi,
            "bytecodeHash": self.bytecode_hash,
            "bytecodeLength": self.bytecode_length,
            "constructorArgs": self.constructor_args,
            "contractAddress": self.contract_address,
            "deployTxHash": self.deploy_tx_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractRecord":
        abi = data.get("abi")
        return cls(
            id=data.get("id", ""),
            saved_at=data.get("savedAt", ""),
            user_address=data.get("userAddress"),
            network_name=data.get("networkName"),
            file_name=data.get("fileName"),
            contract_name=data.get("contractName"),
            abi=abi if isinstance(abi, list) else [],
            bytecode_hash=data.get("bytecodeHash"),
            bytecode_length=data.get("bytecodeLength", 0),
            constructor_args=data.get("constructorArgs") or [],
            contract_address=data.get("contractAddress"),
            deploy_tx_hash=data.get("deployTxHash"),
        )

    def summary_line(self) -> str:
        return f"• {self.contract_name or '(Unnamed)'} @ {self.contract_address or 'N/A'} [{self.network_name}]"


class ContractRegistry(Protocol):
    async def list_contracts(
        self,
        user_address: Optional[str] = None,
        network_name: Optional[str] = None,
    ) -> List[ContractRecord]:
        ...

    async def save_contract(self, **fields: Any) -> ContractRecord:
        ...


def _matches(value: Optional[str], wanted: Optional[str]) -> bool:
    if not wanted:
        return True
    return (value or "").lower() == wanted.strip().lower()


class FileContractRegistry:
    """JSON-file registry with an mtime-aware cache."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.contracts_file)
        self._cache: Optional[List[ContractRecord]] = None
        self._mtime: float = 0.0
        self._lock = asyncio.Lock()

    def _read_file(self) -> List[ContractRecord]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            if not raw.strip():
                return []
            parsed = json.loads(raw)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read contract registry {self.path}: {e}")
            return []
        if not isinstance(parsed, list):
            return []
        return [ContractRecord.from_dict(item) for item in parsed if isinstance(item, dict)]

    def _write_file(self, records: List[ContractRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(
            json.dumps([r.to_dict() for r in records], indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(self.path)
        self._mtime = self.path.stat().st_mtime

    def _ensure_cache(self) -> List[ContractRecord]:
        if not self.path.exists():
            self._cache = []
            self._mtime = 0.0
            return self._cache

        mtime = self.path.stat().st_mtime
        if self._cache is None or mtime > self._mtime:
            self._cache = self._read_file()
            self._mtime = mtime
        return self._cache

    async def list_contracts(
        self,
        user_address: Optional[str] = None,
        network_name: Optional[str] = None,
    ) -> List[ContractRecord]:
        async with self._lock:
            records = await asyncio.to_thread(self._ensure_cache)
        return [
            r for r in records
            if _matches(r.user_address, user_address) and _matches(r.network_name, network_name)
        ]

    async def get_contract(self, record_id: str) -> Optional[ContractRecord]:
        async with self._lock:
            records = await asyncio.to_thread(self._ensure_cache)
        for record in records:
            if record.id == record_id:
                return record
        return None

    async def save_contract(
        self,
        *,
        abi: List[Dict[str, Any]],
        contract_address: Optional[str] = None,
        contract_name: Optional[str] = None,
        network_name: Optional[str] = None,
        user_address: Optional[str] = None,
        deploy_tx_hash: Optional[str] = None,
        file_name: Optional[str] = None,
        bytecode: Optional[str] = None,
        constructor_args: Optional[List[Any]] = None,
    ) -> ContractRecord:
        record = ContractRecord(
            id=f"{int(time.time() * 1000)}_{secrets.token_hex(4)}",
            saved_at=datetime.now(timezone.utc).isoformat(),
            user_address=user_address.strip() if user_address else None,
            network_name=network_name.strip().lower() if network_name else None,
            file_name=file_name,
            contract_name=contract_name,
            abi=abi,
            bytecode_hash=f"0x{bytecode[:16].lower()}..." if bytecode else None,
            bytecode_length=len(bytecode) if bytecode else 0,
            constructor_args=constructor_args or [],
            contract_address=contract_address,
            deploy_tx_hash=deploy_tx_hash,
        )
        async with self._lock:
            records = list(await asyncio.to_thread(self._ensure_cache))
            records.append(record)
            await asyncio.to_thread(self._write_file, records)
            self._cache = records
        logger.info(f"Registered contract {contract_name or '(unnamed)'} at {contract_address} on {network_name}")
        return record

    def _snapshot_sync(self) -> Dict[str, Any]:
        records = self._ensure_cache()
        updated_at = None
        if self.path.exists():
            updated_at = datetime.fromtimestamp(self.path.stat().st_mtime, tz=timezone.utc).isoformat()
        return {
            "schemaVersion": 1,
            "updatedAt": updated_at,
            "count": len(records),
            "records": [r.to_dict() for r in records],
        }

    async def snapshot(self) -> Dict[str, Any]:
        """Read-only view of the whole registry."""
        async with self._lock:
            return await asyncio.to_thread(self._snapshot_sync)
