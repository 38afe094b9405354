"""SkylineAnalyzr HTTP backend."""
