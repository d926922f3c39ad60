"""modelmesh command line interface."""
