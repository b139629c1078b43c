from h2_registry.certification.verifier import CertificationVerifier
from h2_registry.core.models.base import Role
from h2_registry.utils import ZERO_ADDRESS


class FakeAccessController:
    """Grants city_admin to a fixed set of accounts."""

    def __init__(self, city_admins: set[str]):
        self.city_admins = city_admins

    def has_role(self, session, account: str, role: Role) -> bool:
        return role == Role.CITY_ADMIN and account in self.city_admins


class TestCertificationVerifier:
    def test_valid_city_admin_signature(
        self, appointed_contract, producer, city_admin, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash)

        result = appointed_contract.verify_certification(
            producer.address, 50, certification_hash, signature
        )

        assert result.valid
        assert result.signer == city_admin.address

    def test_signer_without_city_admin_role(
        self, appointed_contract, producer, state_admin, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash, signer=state_admin)

        result = appointed_contract.verify_certification(
            producer.address, 50, certification_hash, signature
        )

        assert not result.valid
        assert result.signer == state_admin.address

    def test_signature_over_different_amount(
        self, appointed_contract, producer, city_admin, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash)

        result = appointed_contract.verify_certification(
            producer.address, 49, certification_hash, signature
        )

        assert not result.valid
        assert result.signer != city_admin.address

    def test_malformed_signature(self, appointed_contract, producer, certification_hash):
        result = appointed_contract.verify_certification(
            producer.address, 50, certification_hash, "0x1234"
        )

        assert not result.valid
        assert result.signer == ZERO_ADDRESS

    def test_malformed_inputs_never_raise(
        self, appointed_contract, producer, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash)

        bad_hash = appointed_contract.verify_certification(
            producer.address, 50, "0xnothex", signature
        )
        bad_producer = appointed_contract.verify_certification(
            "0x1234", 50, certification_hash, signature
        )
        negative_amount = appointed_contract.verify_certification(
            producer.address, -1, certification_hash, signature
        )

        for result in (bad_hash, bad_producer, negative_amount):
            assert not result.valid
            assert result.signer == ZERO_ADDRESS

    def test_verifier_uses_access_controller(
        self, producer, city_admin, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash)

        trusting = CertificationVerifier(FakeAccessController({city_admin.address}))
        distrusting = CertificationVerifier(FakeAccessController(set()))

        assert trusting.verify(
            None, producer.address, 50, certification_hash, signature
        ).valid
        assert not distrusting.verify(
            None, producer.address, 50, certification_hash, signature
        ).valid
