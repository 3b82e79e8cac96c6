"""External collaborators: content generation and text embeddings."""
