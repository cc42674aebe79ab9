"""Domain layer - models, enums and errors"""
