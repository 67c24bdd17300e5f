"""billtrack: upload, OCR and classify bills and receipts."""
