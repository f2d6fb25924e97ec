import asyncio
import logging
import threading

from py_ecc.optimized_bls12_381 import G1, curve_order, multiply
import pytest

from splitkeys import threshold, util
from splitkeys.committee import Committee
from splitkeys.exceptions import (
    DuplicateShare, InsufficientShares, InvalidTransition, KeyMismatch, MinipoolExists, UnknownMinipool,
)
from splitkeys.minipool import MinipoolStatus, Verdict, deploy_minipool


MINIPOOL_ADDRESS = '0xdeadbeef'


@pytest.fixture
def validator_key(registry):
    return deploy_minipool(registry, MINIPOOL_ADDRESS)


def test_deployed_minipool_starts_initialized(registry, validator_key):
    minipool = registry.get(MINIPOOL_ADDRESS)

    assert minipool.status is MinipoolStatus.initialized
    assert util.curve_point_to_bytes(minipool.validator_pubkey) == util.curve_point_to_bytes(multiply(G1, validator_key))


def test_deploy_with_given_key(registry):
    assert deploy_minipool(registry, '0x01', 42) == 42
    state = registry.get('0x01').to_state_message()

    assert state == {
        'address': '0x01',
        'validator_pubkey': util.curve_point_to_hex(multiply(G1, 42)),
        'status': 'initialized',
    }


def test_unknown_minipool(registry):
    with pytest.raises(UnknownMinipool):
        registry.get('0xnothere')

    with pytest.raises(UnknownMinipool):
        registry.stake('0xnothere')


def test_deploying_same_address_twice_fails(registry, validator_key):
    with pytest.raises(MinipoolExists):
        deploy_minipool(registry, MINIPOOL_ADDRESS)

    assert registry.addresses() == [MINIPOOL_ADDRESS]
    assert util.curve_point_to_bytes(registry.get(MINIPOOL_ADDRESS).validator_pubkey) == \
        util.curve_point_to_bytes(multiply(G1, validator_key))


def test_addresses(registry):
    for address in ('0x03', '0x01', '0x02'):
        deploy_minipool(registry, address)

    assert registry.addresses() == ['0x03', '0x01', '0x02']


def test_lifecycle_only_moves_forward(registry, validator_key):
    with pytest.raises(InvalidTransition):
        registry.stake(MINIPOOL_ADDRESS)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.initialized

    public_key = multiply(G1, validator_key)
    registry.verify_validator_key(MINIPOOL_ADDRESS, public_key)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.prelaunch

    registry.stake(MINIPOOL_ADDRESS)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.staking

    with pytest.raises(InvalidTransition) as excinfo:
        registry.stake(MINIPOOL_ADDRESS)
    assert excinfo.value.current is MinipoolStatus.staking
    assert registry.verify_validator_key(MINIPOOL_ADDRESS, public_key).verdict is Verdict.accepted
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.staking


def test_stake_requires_verification(registry, validator_key):
    with pytest.raises(InvalidTransition):
        registry.stake(MINIPOOL_ADDRESS)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.initialized


def test_validator_pubkey_is_immutable(registry, validator_key):
    minipool = registry.get(MINIPOOL_ADDRESS)

    with pytest.raises(ValueError):
        minipool.validator_pubkey = multiply(G1, 7)


def test_status_cannot_revert_on_model(registry, validator_key):
    registry.verify_validator_key(MINIPOOL_ADDRESS, multiply(G1, validator_key))
    minipool = registry.get(MINIPOOL_ADDRESS)

    with pytest.raises(ValueError):
        minipool.status = MinipoolStatus.initialized


def test_verification_is_idempotent(registry, validator_key):
    public_key = multiply(G1, validator_key)

    first = registry.verify_validator_key(MINIPOOL_ADDRESS, public_key)
    second = registry.verify_validator_key(MINIPOOL_ADDRESS, public_key)

    assert first == second == (Verdict.accepted, None)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.prelaunch


def test_verification_does_not_demote_staking_minipool(registry, validator_key):
    public_key = multiply(G1, validator_key)
    registry.verify_validator_key(MINIPOOL_ADDRESS, public_key)
    registry.stake(MINIPOOL_ADDRESS)

    assert registry.verify_validator_key(MINIPOOL_ADDRESS, public_key).verdict is Verdict.accepted
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.staking


def test_mismatched_key_is_rejected(registry, validator_key):
    wrong_key = multiply(G1, (validator_key + 1) % curve_order)

    verification = registry.verify_validator_key(MINIPOOL_ADDRESS, wrong_key)

    assert verification.verdict is Verdict.rejected
    assert isinstance(verification.mismatch, KeyMismatch)
    assert verification.mismatch.expected == util.curve_point_to_hex(multiply(G1, validator_key))
    assert verification.mismatch.actual == util.curve_point_to_hex(wrong_key)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.initialized


def test_concurrent_verification_transitions_once(registry, validator_key):
    public_key = multiply(G1, validator_key)
    verdicts = []
    barrier = threading.Barrier(4)

    def verify():
        barrier.wait()
        verdicts.append(registry.verify_validator_key(MINIPOOL_ADDRESS, public_key).verdict)

    threads = [threading.Thread(target=verify) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert verdicts == [Verdict.accepted] * 4
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.prelaunch


def test_independent_minipools_in_parallel(registry, committee, key_threshold):
    addresses = ['0x{:02x}'.format(i) for i in range(4)]
    errors = []

    def lifecycle(address):
        try:
            secret = deploy_minipool(registry, address)
            shares = threshold.split(secret, key_threshold, len(committee))
            asyncio.run(committee.distribute_key_shares(address, shares))
            verification = committee.verify_key_shares(address, registry, key_threshold, threshold.select_first)
            assert verification.verdict is Verdict.accepted
            registry.stake(address)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=lifecycle, args=(address,)) for address in addresses]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert all(registry.get_status(address) is MinipoolStatus.staking for address in addresses)


######################
# Protocol scenarios #
######################


def distributed_minipool(registry, committee):
    secret = deploy_minipool(registry, MINIPOOL_ADDRESS)
    shares = threshold.split(secret, 3, len(committee), committee.identities)
    failures = asyncio.run(committee.distribute_key_shares(MINIPOOL_ADDRESS, shares))
    assert failures == {}
    return secret


def pick(identities):
    return lambda available, t: {i: available[i] for i in identities}


def test_end_to_end_with_three_of_ten(registry):
    committee = Committee.with_size(10)
    secret = distributed_minipool(registry, committee)

    shares = committee.gather_key_shares(MINIPOOL_ADDRESS, 3, pick((2, 5, 9)))
    aggregate = threshold.reconstruct_public_key(shares, 3)
    assert util.curve_point_to_bytes(aggregate) == util.curve_point_to_bytes(multiply(G1, secret))

    assert registry.verify_validator_key(MINIPOOL_ADDRESS, aggregate).verdict is Verdict.accepted
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.prelaunch

    registry.stake(MINIPOOL_ADDRESS)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.staking

    with pytest.raises(InvalidTransition):
        registry.stake(MINIPOOL_ADDRESS)


def test_two_shares_are_insufficient(registry):
    committee = Committee.with_size(10)
    distributed_minipool(registry, committee)

    with pytest.raises(InsufficientShares):
        committee.verify_key_shares(MINIPOOL_ADDRESS, registry, 3, pick((2, 5)))

    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.initialized


def test_corrupted_share_is_rejected(registry):
    committee = Committee.with_size(10)
    distributed_minipool(registry, committee)

    shares = committee.gather_key_shares(MINIPOOL_ADDRESS, 3, pick((2, 5, 9)))
    shares[9] = (shares[9] + 1) % curve_order
    verification = registry.verify_validator_key(MINIPOOL_ADDRESS, threshold.reconstruct_public_key(shares, 3))

    assert verification.verdict is Verdict.rejected
    assert isinstance(verification.mismatch, KeyMismatch)
    assert registry.get_status(MINIPOOL_ADDRESS) is MinipoolStatus.initialized

    # a clean subset still verifies afterwards
    retry = committee.verify_key_shares(MINIPOOL_ADDRESS, registry, 3, pick((1, 3, 10)))
    assert retry.verdict is Verdict.accepted


def secret_renderings(value: int) -> set:
    return {str(value), '{:x}'.format(value), '{:064x}'.format(value), util.private_value_to_bytes(value).hex()}


def test_logs_and_errors_never_contain_secret_material(registry, caplog):
    committee = Committee.with_size(10)

    with caplog.at_level(logging.DEBUG):
        secret = deploy_minipool(registry, MINIPOOL_ADDRESS)
        shares = threshold.split(secret, 3, len(committee), committee.identities)
        asyncio.run(committee.distribute_key_shares(MINIPOOL_ADDRESS, shares))

        failures = asyncio.run(committee.distribute_key_shares(MINIPOOL_ADDRESS, {2: shares[2], 11: shares[3]}))
        assert isinstance(failures[2], DuplicateShare)

        tampered = committee.gather_key_shares(MINIPOOL_ADDRESS, 3, pick((2, 5, 9)))
        tampered[5] = (tampered[5] + 1) % curve_order
        rejected = registry.verify_validator_key(MINIPOOL_ADDRESS, threshold.reconstruct_public_key(tampered, 3))
        assert rejected.verdict is Verdict.rejected

        with pytest.raises(InsufficientShares) as insufficient:
            committee.verify_key_shares(MINIPOOL_ADDRESS, registry, 3, pick((2, 5)))

        assert committee.verify_key_shares(MINIPOOL_ADDRESS, registry, 3, pick((2, 5, 9))).verdict is Verdict.accepted

    texts = [caplog.text, str(insufficient.value), str(rejected.mismatch)]
    texts.extend(str(e) for e in failures.values())

    forbidden = secret_renderings(secret).union(*(secret_renderings(v) for v in shares.values()))
    forbidden |= secret_renderings(tampered[5])
    for text in texts:
        for rendering in forbidden:
            assert rendering not in text
