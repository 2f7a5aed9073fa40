"""Request governor and governed Rentcast client."""
