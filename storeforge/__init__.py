"""Storeforge GDPR compliance webhook service."""
