"""db2snow CLI commands."""
