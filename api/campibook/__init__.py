"""CampiBook: field booking engine and API for sports facilities."""
