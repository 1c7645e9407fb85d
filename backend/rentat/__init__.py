"""Rentat backend: payments, chat maintenance and availability calendar."""
