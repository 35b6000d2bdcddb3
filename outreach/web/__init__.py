# Presentation Layer - HTTP surface (FastAPI)
