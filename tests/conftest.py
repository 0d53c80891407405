import pytest


@pytest.fixture
def patient_form():
    """A complete, valid new-patient form."""
    return {
        "first_name": "Ana", "last_name": "Silva", "date_of_birth": "1990-01-02", "gender": "female",
        "identification_type": "PASSPORT", "identification_country": "UY",
        "identification_value": "A123", "email": "ana@example.com", "phone": "2400 1111",
        "cellular": "099 000 111", "neighborhood": "Pocitos", "street": "Bvar. España",
        "door_number": "2500", "apartment_number": "301", "city": "Montevideo",
        "department": "Montevideo", "postal_code": "11300", "height": "165", "weight": "60",
    }
