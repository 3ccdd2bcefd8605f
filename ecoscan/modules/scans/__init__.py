"""Scan domain package exports."""
from .models import DisposalChoice, ItemCategory, ScanRecord, ScanStatus

__all__ = ["DisposalChoice", "ItemCategory", "ScanRecord", "ScanStatus"]
