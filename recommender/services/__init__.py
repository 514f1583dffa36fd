"""Clients for the external services the recommender composes."""
