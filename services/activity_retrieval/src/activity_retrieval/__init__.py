"""On-demand activity time series for authenticated clients."""
