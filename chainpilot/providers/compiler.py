"""Solidity compilation behind a small protocol so the deploy path can be faked."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import solcx
from solcx.exceptions import SolcError

from ..config import settings
from ..core.errors import CompilationError


logger = logging.getLogger(__name__)


@dataclass
class CompiledContract:
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str


class ContractCompiler(Protocol):
    async def compile(self, source: str, file_name: str) -> List[CompiledContract]:
        """Compile ``source`` and return its artifacts in declaration order."""
        ...


class SolcCompiler:
    """Compiles with the solc binary managed by py-solc-x."""

    def __init__(self, solc_version: Optional[str] = None):
        self.solc_version = solc_version or settings.solc_version

    def _standard_input(self, source: str, file_name: str) -> Dict[str, Any]:
        return {
            "language": "Solidity",
            "sources": {file_name: {"content": source}},
            "settings": {
                "evmVersion": "paris",
                "optimizer": {"enabled": True, "runs": 200},
                "outputSelection": {"*": {"*": ["abi", "evm.bytecode.object"]}},
            },
        }

    def _compile_sync(self, source: str, file_name: str) -> Dict[str, Any]:
        if self.solc_version:
            solcx.install_solc(self.solc_version)
        try:
            return solcx.compile_standard(
                self._standard_input(source, file_name),
                solc_version=self.solc_version,
            )
        except SolcError as e:
            raise CompilationError(errors=[str(e)])

    async def compile(self, source: str, file_name: str) -> List[CompiledContract]:
        output = await asyncio.to_thread(self._compile_sync, source, file_name)

        errors = [
            e.get("formattedMessage") or e.get("message", "")
            for e in output.get("errors", [])
            if e.get("severity") == "error"
        ]
        if errors:
            logger.info(f"Compilation of {file_name} failed with {len(errors)} error(s)")
            raise CompilationError(errors=errors)

        contracts = output.get("contracts", {}).get(file_name, {})
        return [
            CompiledContract(
                name=name,
                abi=artifact.get("abi", []),
                bytecode=artifact.get("evm", {}).get("bytecode", {}).get("object", ""),
            )
            for name, artifact in contracts.items()
        ]
