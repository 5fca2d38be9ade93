"""Remote sources — resolve repository URLs and fetch their files."""
