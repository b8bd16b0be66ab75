import argparse
import os
import sys
from dotenv import load_dotenv


def default_output_path(input_file: str) -> str:
    base, ext = os.path.splitext(input_file)
    return f"{base}.categorized{ext or '.json'}"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Assign portfolio securities to taxonomy categories using Morningstar data."
    )
    parser.add_argument("input_file", help="Portfolio JSON document to classify.")
    parser.add_argument("output_file", nargs="?", help="Where to write the result (default: <input>.categorized.json).")
    parser.add_argument("--config", help="Classifier config file (default: CLASSIFIER_CONFIG_PATH setting).")
    parser.add_argument("--delay", type=float, help="Seconds to wait between two securities.")
    return parser.parse_args(argv)


def main(argv=None):
    """
    Main function to load the portfolio, classify every security and save the result.
    """
    load_dotenv()
    args = parse_args(argv)

    # Imported after load_dotenv so the settings see the .env values
    from classifier.config import ConfigError, load_classifier_config, settings
    from classifier.engine import Classifier
    from classifier.logger import get_logger
    from providers.morningstar import MorningstarAPI
    from providers.portfolio_store import PortfolioStore

    logger = get_logger("run_classifier")

    try:
        config = load_classifier_config(args.config or settings.CLASSIFIER_CONFIG_PATH)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    try:
        store = PortfolioStore.load(args.input_file)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading portfolio file: {e}")
        return 1

    securities = store.get_securities()
    logger.info(f"Found {len(securities)} securities.")

    classifier = Classifier(config, MorningstarAPI(settings), store)
    processed = classifier.classify_portfolio(securities, delay_seconds=args.delay)

    output_file = args.output_file or default_output_path(args.input_file)
    store.save(output_file)
    logger.info(f"Done. {processed} securities processed, result written to {output_file}.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
