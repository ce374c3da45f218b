#!/usr/bin/env python3
"""
Command line entry point

    rushbuy --goods "2567304:2,3133851" --rush --period 500 --order
"""
import argparse
import logging
import sys
from typing import Callable, List, Optional

from .buyer import JingDongBuyer
from .config import AREA_BEIJING, JAR_TYPES, load_config, setup_logging
from .errors import ConfigError, ManualVerificationRequired, RushBuyError
from .goods import parse_goods
from .monitoring.status_board import StatusBoard
from .session.opener import LogOpener

EXIT_OK = 0
EXIT_PURCHASE_FAILED = 1
EXIT_LOGIN_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='rushbuy',
        description='Rush-buy goods on JD.com: QR login, stock polling, cart and order submission',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "goods format:\n"
            "  single goods     2567304(:1)\n"
            "  multiple goods   2567304(:1),3133851(:2)"
        ),
    )
    parser.add_argument('--goods', default='',
                        help='goods to buy, item id with optional :count, comma separated')
    parser.add_argument('--area', default=None,
                        help=f'shipping area code (default {AREA_BEIJING})')
    parser.add_argument('--period', type=int, default=None,
                        help='refresh period in ms while out of stock (default 500)')
    parser.add_argument('--rush', action='store_true', default=None,
                        help='keep refreshing while out of stock')
    parser.add_argument('--order', action='store_true', default=None,
                        help='submit the order once the goods are in the cart')
    parser.add_argument('--config', default=None,
                        help='JSON config file (settings and products)')
    parser.add_argument('--cookie-file', default=None, help='where cookies are kept between runs')
    parser.add_argument('--jar-type', choices=JAR_TYPES, default=None, help='cookie file format')
    parser.add_argument('--no-open', action='store_true',
                        help='do not launch an image viewer, only log the QR code path')
    parser.add_argument('--show-cart', action='store_true', help='log the cart contents after login')
    parser.add_argument('--dashboard', action='store_true', help='serve task status over HTTP')
    parser.add_argument('--dashboard-port', type=int, default=5000)
    parser.add_argument('--log-level', default=None, help='DEBUG, INFO, WARNING ...')
    return parser


def main(argv: Optional[List[str]] = None,
         buyer_factory: Callable[..., JingDongBuyer] = JingDongBuyer) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            ship_area=args.area,
            period=args.period / 1000.0 if args.period is not None else None,
            auto_rush=args.rush,
            auto_submit=args.order,
            cookie_file=args.cookie_file,
            jar_type=args.jar_type,
            log_level=args.log_level,
        )
        goods = parse_goods(args.goods) or dict(config.products)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_LOGIN_FAILED

    setup_logging(config.log_dir, config.log_level.upper())
    logger = logging.getLogger('rushbuy')

    if not goods and not args.show_cart:
        logger.error("No goods given, use --goods or the products section of the config")
        return EXIT_LOGIN_FAILED

    logger.info(f"[Area: {config.ship_area}, Goods: {goods}, Period: {config.period}s, "
                f"Rush: {config.auto_rush}, Order: {config.auto_submit}]")

    board = StatusBoard()
    if args.dashboard:
        from .monitoring.dashboard import start_dashboard
        start_dashboard(board, port=args.dashboard_port)

    opener = LogOpener() if args.no_open else None
    with buyer_factory(config, board=board, opener=opener) as buyer:
        try:
            buyer.login()
        except ManualVerificationRequired as e:
            logger.error(f"Finish the security check at {e.url} and run again")
            return EXIT_LOGIN_FAILED
        except RushBuyError as e:
            logger.error(f"Login failed: {e}")
            return EXIT_LOGIN_FAILED

        if args.show_cart:
            try:
                buyer.cart_details()
            except RushBuyError as e:
                logger.error(f"Could not load cart: {e}")

        if not goods:
            return EXIT_OK

        try:
            results = buyer.rush_buy(goods)
        except KeyboardInterrupt:
            logger.warning("[STOPPED] Rush stopped by user")
            return EXIT_PURCHASE_FAILED

    if all(result.succeeded for result in results):
        return EXIT_OK
    return EXIT_PURCHASE_FAILED


if __name__ == '__main__':
    sys.exit(main())
