import pytest

from h2_registry.contract import HydrogenCreditContract
from h2_registry.core.errors import (
    HashReused,
    InvalidAmount,
    InvalidCertificationHash,
    InvalidCertifierSignature,
    UnknownRecipient,
)
from h2_registry.core.models.base import ObservationType
from h2_registry.core.observations import CreditsIssued


class TestMintingOrchestrator:
    def test_mint_with_certification(
        self,
        appointed_contract: HydrogenCreditContract,
        producer,
        city_admin,
        certification_hash,
        certify,
        observations,
    ):
        """A city admin certifies 50 kg for a producer; credits 1..50 are issued
        and each carries the producer, certifier and certification hash."""
        signature = certify(producer.address, 50, certification_hash)

        result = appointed_contract.mint_with_certification(
            producer.address, 50, certification_hash, signature
        )

        assert result.to == producer.address
        assert result.amount == 50
        assert (result.first_id, result.last_id) == (1, 50)
        assert result.token_ids == list(range(1, 51))
        assert result.certification_hash == certification_hash
        assert result.certifier == city_admin.address

        assert appointed_contract.total_supply() == 50
        assert appointed_contract.balance_of(producer.address) == 50
        assert appointed_contract.certification_hash_used(certification_hash)

        for token_id in (1, 25, 50):
            record = appointed_contract.get_certification_data(token_id)
            assert record.token_id == token_id
            assert record.producer == producer.address
            assert record.certifier == city_admin.address
            assert record.certification_hash == certification_hash

        assert len(observations) == 1
        issued = observations[0]
        assert isinstance(issued, CreditsIssued)
        assert issued.observation_type == ObservationType.CREDITS_ISSUED
        assert (issued.first_id, issued.last_id) == (1, 50)
        assert issued.certifier == city_admin.address

    def test_hash_cannot_be_reused(
        self, minted_contract: HydrogenCreditContract, producer, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash)

        with pytest.raises(HashReused):
            minted_contract.mint_with_certification(
                producer.address, 50, certification_hash, signature
            )
        # Other spellings of the same digest are the same certification
        with pytest.raises(HashReused):
            minted_contract.mint_with_certification(
                producer.address, 50, certification_hash[2:].upper(), signature
            )

        assert minted_contract.total_supply() == 50
        assert minted_contract.summary().consumed_certifications == 1

    def test_consecutive_mints_are_contiguous(
        self, minted_contract, producer, claim_hash_factory, certify
    ):
        certification_hash = claim_hash_factory(20, notes="batch 2")
        signature = certify(producer.address, 20, certification_hash)

        result = minted_contract.mint_with_certification(
            producer.address, 20, certification_hash, signature
        )

        assert (result.first_id, result.last_id) == (51, 70)
        assert minted_contract.total_supply() == 70
        assert minted_contract.tokens_of_owner(producer.address) == list(range(1, 71))

    @pytest.mark.parametrize("amount", [0, 1001])
    def test_amount_out_of_bounds(
        self, appointed_contract, producer, claim_hash_factory, certify, amount
    ):
        certification_hash = claim_hash_factory(1, notes=f"amount {amount}")
        signature = certify(producer.address, amount, certification_hash)

        with pytest.raises(InvalidAmount):
            appointed_contract.mint_with_certification(
                producer.address, amount, certification_hash, signature
            )

        assert appointed_contract.total_supply() == 0
        assert not appointed_contract.certification_hash_used(certification_hash)

    def test_maximum_amount(self, appointed_contract, producer, claim_hash_factory, certify):
        certification_hash = claim_hash_factory(1000)
        signature = certify(producer.address, 1000, certification_hash)

        result = appointed_contract.mint_with_certification(
            producer.address, 1000, certification_hash, signature
        )

        assert (result.first_id, result.last_id) == (1, 1000)

    def test_recipient_must_be_producer(
        self, appointed_contract, buyer, claim_hash_factory, certify
    ):
        appointed_contract.register_buyer(buyer.address)
        certification_hash = claim_hash_factory(10, producer_address=buyer.address)
        signature = certify(buyer.address, 10, certification_hash)

        with pytest.raises(UnknownRecipient):
            appointed_contract.mint_with_certification(
                buyer.address, 10, certification_hash, signature
            )
        assert appointed_contract.balance_of(buyer.address) == 0

    def test_signer_must_be_city_admin(
        self,
        appointed_contract,
        producer,
        state_admin,
        certification_hash,
        certify,
        observations,
    ):
        signature = certify(producer.address, 50, certification_hash, signer=state_admin)

        with pytest.raises(InvalidCertifierSignature) as exc_info:
            appointed_contract.mint_with_certification(
                producer.address, 50, certification_hash, signature
            )

        assert exc_info.value.details["signer"] == state_admin.address
        assert appointed_contract.total_supply() == 0
        assert not appointed_contract.certification_hash_used(certification_hash)
        assert observations == []

    def test_signature_bound_to_producer_and_amount(
        self, appointed_contract, producer, outsider, certification_hash, certify
    ):
        # Certified for 40 kg, claimed as 50 kg
        signature = certify(producer.address, 40, certification_hash)
        with pytest.raises(InvalidCertifierSignature):
            appointed_contract.mint_with_certification(
                producer.address, 50, certification_hash, signature
            )

        # Certified for another producer
        signature = certify(outsider.address, 50, certification_hash)
        with pytest.raises(InvalidCertifierSignature):
            appointed_contract.mint_with_certification(
                producer.address, 50, certification_hash, signature
            )

        assert appointed_contract.total_supply() == 0

    def test_malformed_certification_hash(self, appointed_contract, producer):
        with pytest.raises(InvalidCertificationHash):
            appointed_contract.mint_with_certification(
                producer.address, 5, "0x1234", "0x" + "00" * 65
            )

    def test_metadata_is_stored(
        self, appointed_contract, producer, certification_hash, certify
    ):
        signature = certify(producer.address, 50, certification_hash)
        metadata = {"facility": "Electrolyser Site 7", "method": "PEM"}

        appointed_contract.mint_with_certification(
            producer.address, 50, certification_hash, signature, metadata=metadata
        )

        record = appointed_contract.get_certification_data(50)
        assert record.certification_metadata == metadata

    def test_failed_mint_leaves_hash_unused(
        self,
        appointed_contract,
        producer,
        certification_hash,
        certify,
        observations,
        monkeypatch,
    ):
        """If minting fails after the hash was consumed, the whole call rolls back."""
        signature = certify(producer.address, 50, certification_hash)

        def failing_mint(*args, **kwargs):
            raise RuntimeError("storage failure")

        monkeypatch.setattr(appointed_contract.ledger, "mint", failing_mint)

        with pytest.raises(RuntimeError):
            appointed_contract.mint_with_certification(
                producer.address, 50, certification_hash, signature
            )

        assert not appointed_contract.certification_hash_used(certification_hash)
        assert appointed_contract.summary().consumed_certifications == 0
        assert observations == []

        monkeypatch.undo()
        result = appointed_contract.mint_with_certification(
            producer.address, 50, certification_hash, signature
        )
        assert (result.first_id, result.last_id) == (1, 50)
