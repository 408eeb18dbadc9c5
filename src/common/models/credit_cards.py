from dataclasses import dataclass


@dataclass
class CreditCard:
    card_number: str
    expiry_month: int
    expiry_year: int
    holder_name: str

    @staticmethod
    def mask(card_number: str) -> str:
        return "*" * (len(card_number) - 4) + card_number[-4:]
