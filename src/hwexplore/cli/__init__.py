"""hwexplore command line interface."""
