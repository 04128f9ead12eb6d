"""
`pagesnap` command: save a web page as one self-contained HTML file.

    pagesnap https://example.com -o example.html --set removeHidden=false
"""
import asyncio
import logging
import re
import sys
from pathlib import Path
from urllib.parse import urlparse

import click

from pagesnap.capture import (
    CaptureError,
    ProgressEvent,
    SnapshotBrowser,
    load_script_bundle,
    page_to_single_file,
)
from pagesnap.common.logger import get_log_dir, setup_logging
from pagesnap.config.snapshot_options import coerce_option_value, resolve_snapshot_options
from pagesnap.util.file_utils import from_json_or_yaml, save_html

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = 'pagesnap.log'


def default_output_name(url):
    """
    Derives an output file name from the URL host, e.g. 'qa.tech.html'.
    """
    host = urlparse(url).netloc or 'page'
    safe_host = re.sub(r'[^A-Za-z0-9_.-]+', '-', host).strip('-') or 'page'
    return f"{safe_host}.html"


def parse_overrides(values):
    """
    Turns repeated `KEY=VALUE` strings into an options mapping.
    """
    overrides = {}
    for item in values or ():
        key, sep, raw = item.partition('=')
        key = key.strip()
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got {item!r}", param_hint='--set')
        try:
            overrides[key] = coerce_option_value(key, raw)
        except KeyError:
            raise click.BadParameter(f"Unknown option {key!r}", param_hint='--set')
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint='--set')
    return overrides


def build_options(config_path=None, overrides=None):
    data = from_json_or_yaml(config_path) if config_path else {}
    data.update(overrides or {})
    return resolve_snapshot_options(data)


def format_stats(page_data):
    if page_data.stats is None:
        return []
    processed = page_data.stats.processed.model_dump(by_alias=True)
    discarded = page_data.stats.discarded.model_dump(by_alias=True)
    lines = []
    for key, count in processed.items():
        dropped = discarded.get(key, 0)
        if count or dropped:
            lines.append(f"{key}: processed={count} discarded={dropped}")
    return lines


def _log_progress(event: ProgressEvent):
    logger.debug("progress type=%s step=%s progress=%.2f", event.type, event.step, event.progress)


async def snapshot_url(url, options, bundle, headless=True, timeout=None):
    """
    Loads `url` in a fresh browser and captures it. `timeout` (seconds) bounds
    the capture itself; page-side state is reverted when it expires.
    """
    async with SnapshotBrowser(headless=headless) as browser:
        page = await browser.open_page(url, options)
        try:
            capture = page_to_single_file(page, options, bundle=bundle, on_progress=_log_progress)
            if timeout:
                return await asyncio.wait_for(capture, timeout=timeout)
            return await capture
        finally:
            await page.context.close()


@click.command(name="pagesnap")
@click.argument('url')
@click.option('--output', '-o', default=None,
              help='Output HTML file. Defaults to <host>.html in the current directory.',
              type=click.Path(dir_okay=False))
@click.option('--config', '-c', default=None,
              help='Path to an options file (YAML or JSON).',
              type=click.Path(exists=True, dir_okay=False))
@click.option('--set', 'overrides', multiple=True, metavar='KEY=VALUE',
              help='Override one option, e.g. --set removeScripts=false.')
@click.option('--bundle', '-b', default=None,
              help='Path to the capture script bundle (JSON).',
              type=click.Path(exists=True, dir_okay=False))
@click.option('--headed', is_flag=True, help='Show the browser window.')
@click.option('--timeout', '-t', default=None, type=float,
              help='Maximum capture time in seconds.')
@click.option('--log-file', default=None, type=click.Path(dir_okay=False),
              help='Log file path. Defaults to ~/.pagesnap/logs/pagesnap.log.')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging.')
def run(url, output, config, overrides, bundle, headed, timeout, log_file, verbose):
    """
    Saves the page at URL as a single self-contained HTML file.
    """
    setup_logging(log_file_path=log_file or get_log_dir() / DEFAULT_LOG_FILE, verbose=verbose)

    try:
        options = build_options(config, parse_overrides(overrides))
    except click.BadParameter:
        raise
    except Exception as e:
        logger.error(f"Invalid options: {e}")
        click.echo(f"Error: Invalid options: {e}", err=True)
        sys.exit(1)

    try:
        script_bundle = load_script_bundle(bundle)
    except CaptureError as e:
        logger.error(str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        page_data = asyncio.run(
            snapshot_url(url, options, script_bundle, headless=not headed, timeout=timeout)
        )
    except asyncio.TimeoutError:
        logger.error(f"Capture of {url} timed out after {timeout}s")
        click.echo(f"Error: capture timed out after {timeout}s", err=True)
        sys.exit(1)
    except CaptureError as e:
        logger.error(f"Capture of {url} failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    output_path = Path(output or default_output_name(url))
    save_html(output_path, page_data.text, include_bom=options.include_bom)
    logger.info(f"Saved {url} to {output_path}")
    click.echo(f"Saved {url} to {output_path}")
    for line in format_stats(page_data):
        click.echo(f"  {line}")


if __name__ == '__main__':
    run()
