"""autospec command-line interface."""
