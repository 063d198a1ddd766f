"""Application layer for TableCrud."""
