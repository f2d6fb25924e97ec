import argparse
import asyncio
import logging
import random
import sys

from . import db, threshold, util
from .committee import Committee
from .minipool import MinipoolRegistry, Verdict, deploy_minipool
from .exceptions import SplitKeysError

DEFAULT_NUM_MEMBERS = 10
DEFAULT_THRESHOLD = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='splitkeys',
                                     description='Split a minipool validator key among an oracle committee')
    parser.add_argument('--minipool-address', nargs='?', default='0xdeadbeef',
                        help='Address of the minipool to deploy (default: %(default)s)')
    parser.add_argument('-n', '--num-members', type=int, nargs='?', default=DEFAULT_NUM_MEMBERS,
                        help='Committee size when no committee file is given (default: %(default)s)')
    parser.add_argument('-t', '--threshold', type=int, nargs='?', default=DEFAULT_THRESHOLD,
                        help='Minimum number of key shares needed to recover the key (default: %(default)s)')
    parser.add_argument('--committee-file', nargs='?', default=None,
                        help='File listing committee member identities, one per line')
    parser.add_argument('--validator-key-file', nargs='?', default=None,
                        help='File to load the validator secret key from; a fresh key is used if omitted')
    parser.add_argument('--selection', choices=sorted(threshold.SELECTION_POLICIES), default='random',
                        help='How verifying members are chosen (default: %(default)s)')
    parser.add_argument('--seed', type=int, nargs='?', default=None,
                        help='Seed for the member selection, for reproducible runs')
    parser.add_argument('--db-url', nargs='?', default='sqlite://',
                        help='SQLAlchemy database URL for minipool state (default: in-memory)')
    parser.add_argument('--no-stake', action='store_true',
                        help='Stop after verifying the key shares')
    parser.add_argument('--log-level', type=int, nargs='?', default=logging.INFO,
                        help='Logging level (default: %(default)s)')
    parser.add_argument('--log-format', nargs='?', default='%(message)s',
                        help='Logging message format (default: %(default)s)')
    return parser


async def run(args) -> int:
    if args.committee_file is not None:
        committee = Committee(util.get_identities(args.committee_file))
    else:
        committee = Committee.with_size(args.num_members)

    if args.seed is not None:
        rng = random.Random(args.seed)
    else:
        rng = util.random
    policy = threshold.SELECTION_POLICIES[args.selection](rng)

    registry = MinipoolRegistry(db.init(args.db_url))

    validator_key = None
    if args.validator_key_file is not None:
        validator_key = util.get_or_generate_private_value(args.validator_key_file)

    validator_key = deploy_minipool(registry, args.minipool_address, validator_key)
    logging.info('created minipool {}; validator pubkey {}'.format(
        args.minipool_address, registry.get(args.minipool_address).to_state_message()['validator_pubkey']))

    shares = threshold.split(validator_key, args.threshold, len(committee), committee.identities)
    del validator_key

    logging.info('sending key shares to the committee...')
    failures = await committee.distribute_key_shares(args.minipool_address, shares)
    del shares
    if failures:
        logging.error('could not distribute all key shares')
        return 1

    verification = committee.verify_key_shares(args.minipool_address, registry, args.threshold, policy)
    if verification.verdict is not Verdict.accepted:
        return 1

    if not args.no_stake:
        registry.stake(args.minipool_address)
        logging.info('successfully started staking on minipool {}'.format(args.minipool_address))

    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # args parsed; begin getting config stuff
    logging.basicConfig(level=args.log_level, format=args.log_format)

    try:
        return asyncio.run(run(args))
    except (SplitKeysError, ValueError) as e:
        logging.error(str(e))
        return 1


if __name__ == '__main__':
    sys.exit(main())
