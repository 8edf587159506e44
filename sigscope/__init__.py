"""SigScope application entry point."""
