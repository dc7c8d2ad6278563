"""REU program scraping and field-normalization pipeline."""
