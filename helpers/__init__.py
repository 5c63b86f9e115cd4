"""Calendar helpers shared by the loader and the workflow."""
