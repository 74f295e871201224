from rentledger.models.document import Document

__all__ = ["Document"]
