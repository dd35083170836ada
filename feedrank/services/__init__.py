"""Service layer helpers"""
