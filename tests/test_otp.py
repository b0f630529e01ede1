"""Tests for the one-time passcode generator."""

from datetime import timedelta

from core.otp import OTP_LENGTH, OtpGenerator, is_well_formed


class TestOtpGenerator:
    def test_code_is_six_digits(self):
        for _ in range(200):
            code = OtpGenerator().generate().code
            assert len(code) == OTP_LENGTH
            assert code.isdigit()
            assert code[0] != "0"

    def test_expiry_is_absolute(self, clock):
        otp = OtpGenerator(ttl=timedelta(minutes=5), clock=clock).generate()
        assert otp.expires_at == clock.now + timedelta(minutes=5)

    def test_repr_hides_code(self, clock):
        otp = OtpGenerator(clock=clock).generate()
        assert otp.code not in repr(otp)


class TestIsWellFormed:
    def test_accepts_six_digits(self):
        assert is_well_formed("123456")

    def test_rejects_other_shapes(self):
        for bad in ["", "12345", "1234567", "12345a", " 12345", "١٢٣٤٥٦"]:
            assert not is_well_formed(bad), bad
