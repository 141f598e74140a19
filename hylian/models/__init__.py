from hylian.models.contracts import Contract, ContractSigner, ContractStatus, Signature, SignerStatus
from hylian.models.documents import Document, DocumentStatus, FieldType, SignatureField, SignerRole

__all__ = [
    "Contract",
    "ContractSigner",
    "ContractStatus",
    "Document",
    "DocumentStatus",
    "FieldType",
    "Signature",
    "SignatureField",
    "SignerRole",
    "SignerStatus",
]
