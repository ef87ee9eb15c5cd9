"""Infrastructure layer - storage backends and sample data."""
