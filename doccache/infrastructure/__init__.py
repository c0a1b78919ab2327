"""Infrastructure: Firestore store adapter, Redis cache adapter, repository and lookup cache."""
