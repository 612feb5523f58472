"""Pure value types: pixel descriptor, buffer, metadata, dynamic image."""
