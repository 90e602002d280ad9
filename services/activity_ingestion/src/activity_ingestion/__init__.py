"""Upload trigger: converts uploaded FIT files into compressed JSON artifacts."""
