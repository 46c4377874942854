"""File formats: building documents and STL export."""
