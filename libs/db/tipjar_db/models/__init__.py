from tipjar_db.models.goal import DonationGoal
from tipjar_db.models.payment import Payment
from tipjar_db.models.payout import BankAccount, Payout
from tipjar_db.models.profile import DonorVisibility, Profile
from tipjar_db.models.verification import PersonalData, UserVerification

__all__ = [
    "BankAccount",
    "DonationGoal",
    "DonorVisibility",
    "PersonalData",
    "Payment",
    "Payout",
    "Profile",
    "UserVerification",
]
