"""Registry of services and the gates that front them."""
