"""CLI entrypoint for k8s-secret-editor."""
import sys
import argparse
import logging
from typing import List, Optional

from ..errors import EditSessionError
from ..version import BuildInfo

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; the terminal's stdout belongs to the session."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )


def cmd_version(build_info: BuildInfo) -> None:
    """Show version information."""
    print(build_info.describe())


def cmd_edit(args) -> int:
    """Run one interactive edit session."""
    from k8s_secret_editor.cli.prompts import TerminalPrompter
    from k8s_secret_editor.secrets.domains.config_loader import resolve_settings
    from k8s_secret_editor.secrets.domains.editor import ExternalEditor
    from k8s_secret_editor.secrets.domains.kube_client import KubeSecretStore
    from k8s_secret_editor.secrets.workflows.edit_session import EditSessionWorkflow

    settings = resolve_settings(
        editor=args.editor,
        kubeconfig=args.kubeconfig,
        timeout=args.timeout,
        config_path=args.config,
    )
    store = KubeSecretStore.from_kubeconfig(settings.kubeconfig, settings.request_timeout)
    editor = ExternalEditor.resolve(settings.editor_path, fallback=settings.editor_fallback)

    workflow = EditSessionWorkflow(store, editor, TerminalPrompter())
    final_state = workflow.run()
    logger.debug(f"Edit session finished in state '{final_state.value}'")
    return 0


def report_error(error: EditSessionError) -> None:
    """Log the error category, message and underlying cause to stderr."""
    logger.error(f"Error ({error.category}): {error}")
    cause = error.__cause__
    if cause is not None and str(cause) and str(cause) not in str(error):
        logger.error(f"Caused by: {cause}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k8s-secret-editor",
        description="Edit a single key of a Kubernetes Secret in your text editor",
        epilog="""
Exit codes:
  0 - Secret saved, left unchanged, or save cancelled
  1 - Runtime error (configuration, cluster, editor, temp file)
  2 - Usage error (invalid arguments)

Environment variables:
  EDITOR                    - Editor program (overridden by --editor)
  KUBECONFIG                - Kubeconfig path (overridden by --kubeconfig)
  K8S_SECRET_EDITOR_CONFIG  - Config file path (overridden by --config)

Configuration:
  Default location: ~/.config/k8s-secret-editor/config.yml
  Keys: editor, kubeconfig, request_timeout
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--editor",
        help="Path to the text editor (default: $EDITOR)"
    )
    parser.add_argument(
        "--kubeconfig",
        help="Path to the kubeconfig file (default: $KUBECONFIG or ~/.kube/config)"
    )
    parser.add_argument(
        "--config",
        help="Path to the config file (default: $K8S_SECRET_EDITOR_CONFIG or ~/.config/k8s-secret-editor/config.yml)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Timeout in seconds for each Kubernetes API call (default: 30)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug information to stderr"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit"
    )
    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success or cancelled save
        1 - Runtime errors (configuration, cluster, editor, temp file)
        2 - Usage errors (invalid arguments)
    """
    build_info = BuildInfo.current()
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.version:
        cmd_version(build_info)
        sys.exit(0)

    try:
        sys.exit(cmd_edit(args))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except EditSessionError as e:
        report_error(e)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
