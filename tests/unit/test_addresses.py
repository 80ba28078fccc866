"""
Address Deriver Unit Tests
==========================
Seeded account addresses and pool-authority derivation.
"""

import pytest
from solders.pubkey import Pubkey


class TestSeededAddress:

    def test_matches_solders(self, keys, network_config):
        from ammkit.addresses import derive_seeded_address

        derived = derive_seeded_address(keys.owner, "AMM1700000000000", network_config.program)
        assert derived == Pubkey.create_with_seed(keys.owner, "AMM1700000000000", network_config.program)

    def test_accepts_base58_strings(self, keys, network_config):
        from ammkit.addresses import derive_seeded_address

        assert derive_seeded_address(str(keys.owner), "AMM1", network_config.amm_program_id) == \
            derive_seeded_address(keys.owner, "AMM1", network_config.program)

    def test_seed_too_long(self, keys, network_config):
        from ammkit.addresses import derive_seeded_address
        from ammkit.errors import InvalidSeed

        with pytest.raises(InvalidSeed):
            derive_seeded_address(keys.owner, "x" * 33, network_config.program)

    def test_new_pool_seed(self):
        from ammkit.addresses import new_pool_seed

        assert new_pool_seed(now_ms=1700000000123) == "AMM1700000000123"
        assert new_pool_seed("POOL", now_ms=5) == "POOL5"
        assert new_pool_seed().startswith("AMM")

    def test_invalid_base(self, network_config):
        from ammkit.addresses import derive_seeded_address
        from ammkit.errors import InvalidAddress

        with pytest.raises(InvalidAddress):
            derive_seeded_address("not an address", "AMM1", network_config.program)


class TestProgramDerivedAddress:

    def test_matches_find_program_address(self, keys, network_config):
        """The bump search agrees with the reference implementation."""
        from ammkit.addresses import derive_pda

        expected = Pubkey.find_program_address([bytes(keys.pool)], network_config.program)
        assert derive_pda([bytes(keys.pool)], network_config.program) == expected

    def test_deterministic(self, keys, network_config):
        from ammkit.addresses import find_pool_authority

        assert find_pool_authority(keys.pool, network_config.program) == \
            find_pool_authority(keys.pool, network_config.program)

    def test_seed_sensitivity(self, keys, network_config):
        from ammkit.addresses import find_pool_authority

        first, _ = find_pool_authority(keys.pool, network_config.program)
        second, _ = find_pool_authority(keys.user, network_config.program)
        assert first != second

    def test_program_sensitivity(self, keys, network_config):
        from ammkit.addresses import find_pool_authority

        first, _ = find_pool_authority(keys.pool, network_config.program)
        second, _ = find_pool_authority(keys.pool, keys.owner)
        assert first != second

    def test_result_is_off_curve(self, keys, network_config):
        from ammkit.addresses import find_pool_authority

        authority, _ = find_pool_authority(keys.pool, network_config.program)
        assert not authority.is_on_curve()

    def test_create_pda_matches_solders(self, keys, network_config):
        from ammkit.addresses import create_pda

        _, bump = Pubkey.find_program_address([bytes(keys.pool)], network_config.program)
        seeds = [bytes(keys.pool), bytes([bump])]
        assert create_pda(seeds, network_config.program) == \
            Pubkey.create_program_address(seeds, network_config.program)

    def test_on_curve_bump_is_address_mismatch(self, network_config):
        """Every bump above the found one lands on curve for those seeds."""
        from ammkit.addresses import create_pda, derive_pda
        from ammkit.errors import AddressMismatch

        for n in range(1, 64):
            seed = bytes([n]) * 32
            _, bump = derive_pda([seed], network_config.program)
            if bump < 255:
                break
        else:
            pytest.fail("no seed with a skipped bump")

        with pytest.raises(AddressMismatch) as exc:
            create_pda([seed, bytes([bump + 1])], network_config.program)

        assert exc.value.details["program"] == str(network_config.program)

    def test_too_many_seeds(self, network_config):
        from ammkit.addresses import derive_pda
        from ammkit.errors import InvalidSeed

        with pytest.raises(InvalidSeed):
            derive_pda([b"s"] * 16, network_config.program)

    def test_seed_too_long(self, network_config):
        from ammkit.addresses import derive_pda
        from ammkit.errors import InvalidSeed

        with pytest.raises(InvalidSeed):
            derive_pda([bytes(33)], network_config.program)


class TestPoolAuthority:

    def test_rederived_from_stored_nonce(self, keys, network_config):
        from ammkit.addresses import find_pool_authority, pool_authority

        authority, nonce = find_pool_authority(keys.pool, network_config.program)
        assert pool_authority(keys.pool, nonce, network_config.program) == authority

    def test_verify_rejects_wrong_authority(self, keys, network_config):
        from ammkit.addresses import find_pool_authority, verify_pool_authority
        from ammkit.errors import AddressMismatch

        _, nonce = find_pool_authority(keys.pool, network_config.program)
        with pytest.raises(AddressMismatch) as exc:
            verify_pool_authority(keys.pool, nonce, network_config.program, keys.owner)

        assert exc.value.details["actual"] == str(keys.owner)

    def test_wrong_nonce_never_yields_the_authority(self, keys, network_config):
        """A different bump either lands on curve or derives another address."""
        from ammkit.addresses import find_pool_authority, pool_authority
        from ammkit.errors import AddressMismatch

        authority, nonce = find_pool_authority(keys.pool, network_config.program)
        other = (nonce - 1) % 256
        try:
            assert pool_authority(keys.pool, other, network_config.program) != authority
        except AddressMismatch:
            pass

    @pytest.mark.parametrize("nonce", [-1, 256, True, "1"])
    def test_nonce_range(self, keys, network_config, nonce):
        from ammkit.addresses import pool_authority
        from ammkit.errors import InvalidSeed

        with pytest.raises(InvalidSeed):
            pool_authority(keys.pool, nonce, network_config.program)
