"""Services of the Vaccination Tracker core."""
