"""Client library for the doctor-appointment booking API."""
