"""Services for the Busana application."""
