"""Infrastructure adapters: record stores and URL signers."""
