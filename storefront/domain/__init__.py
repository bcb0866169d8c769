"""Feature domains - each split into router, schemas, repository and service"""
