"""Service layer helpers"""

from .contracts import ContractRecord, ContractRegistry, FileContractRegistry

__all__ = [
    "ContractRecord",
    "ContractRegistry",
    "FileContractRegistry",
]
