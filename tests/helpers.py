from datetime import datetime, timedelta, timezone


def application_form(**overrides):
    form = {
        "full_name": "John Doe",
        "date_of_birth": "1990-04-12",
        "phone_number": "01712345678",
        "address": "123 Dhaka Road, Dhaka",
        "national_id_number": "1990123456789",
        "nid_front_url": "nid_front.jpg",
        "nid_back_url": "nid_back.jpg",
        "salary_amount": 35000,
        "job_type": "Salaried Employee",
        "bank_account_number": "0011223344",
        "emergency_contact_name": "Jane Doe",
        "emergency_contact_phone": "01898765432",
        "loan_amount": 10000,
        "loan_duration": "3",
        "downpayment_method": "bKash",
        "downpayment_screenshot_url": "bkash_receipt.png",
    }
    form.update(overrides)
    return form


class StepClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.current = self.current + self.step
        return self.current
