"""Tests para app/utils/payment.py"""
from app.enums import PaymentMethodType
from app.utils.payment import normalize_payment_method_kind, payment_method_label


class TestNormalizePaymentMethodKind:
    def test_cash_variants(self):
        assert normalize_payment_method_kind("cash") == PaymentMethodType.cash
        assert normalize_payment_method_kind("efectivo") == PaymentMethodType.cash
        assert normalize_payment_method_kind("  EFECTIVO ") == PaymentMethodType.cash

    def test_card_variants(self):
        assert normalize_payment_method_kind("tarjeta") == PaymentMethodType.card
        assert normalize_payment_method_kind("debito") == PaymentMethodType.card
        assert normalize_payment_method_kind("credit") == PaymentMethodType.card

    def test_wallet_variants(self):
        assert normalize_payment_method_kind("yape") == PaymentMethodType.wallet
        assert normalize_payment_method_kind("Plin") == PaymentMethodType.wallet
        assert normalize_payment_method_kind("billetera") == PaymentMethodType.wallet

    def test_transfer(self):
        assert normalize_payment_method_kind("transferencia") == PaymentMethodType.transfer
        assert normalize_payment_method_kind("deposito") == PaymentMethodType.transfer

    def test_unknown_returns_other(self):
        assert normalize_payment_method_kind("trueque") == PaymentMethodType.other
        assert normalize_payment_method_kind("") == PaymentMethodType.other
        assert normalize_payment_method_kind(None) == PaymentMethodType.other


class TestPaymentMethodLabel:
    def test_spanish_labels(self):
        assert payment_method_label("cash") == "Efectivo"
        assert payment_method_label("yape") == "Billetera Digital"
        assert payment_method_label("transfer") == "Transferencia"

    def test_unknown_returns_otro(self):
        assert payment_method_label("unknown") == "Otro"
        assert payment_method_label(None) == "Otro"
