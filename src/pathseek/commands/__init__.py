"""Line command registry and built-in commands."""
