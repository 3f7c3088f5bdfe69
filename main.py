"""
CSR generator: CLI entry point.

Usage:
  python main.py --generate                          # key pair + CSR for the configured subject
  python main.py --generate --cn alice --email a@x   # override the subject for this run
  python main.py --generate --no-save                # print PEMs instead of writing files
  python main.py --verify csr-20261019T063000000000Z.csr  # check a CSR's signature
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger(__name__)


# ── Logging setup ─────────────────────────────────────────────────────────────


def configure_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


# ── Commands ──────────────────────────────────────────────────────────────────


def run_generate(
    common_name: Optional[str] = None,
    email: Optional[str] = None,
    key_size: Optional[int] = None,
    output_dir: Optional[str] = None,
    save: bool = True,
):
    """Generate a key pair and CSR, then save or print the artifacts."""
    from config import check_key_size, settings
    from csr.pipeline import generate_csr
    from csr.request import SubjectInfo
    from storage.artifacts import write_artifacts

    subject = SubjectInfo(
        common_name=common_name if common_name is not None else settings.CSR_COMMON_NAME,
        email=email if email is not None else settings.CSR_EMAIL,
    )
    bits = settings.RSA_KEY_SIZE if key_size is None else check_key_size(key_size)
    log.info("generating csr", common_name=subject.common_name, email=subject.email, key_size=bits)

    artifacts = generate_csr(subject, key_size=bits, public_exponent=settings.RSA_PUBLIC_EXPONENT)
    log.info("key pair generated", elapsed_ms=round(artifacts.elapsed_keygen_ms))

    if save:
        metadata = write_artifacts(output_dir or settings.OUTPUT_DIR, artifacts, subject)
        log.info("artifacts saved", **metadata["files"])
        sys.stdout.write(artifacts.csr_pem)
    else:
        sys.stdout.write(artifacts.private_key_pem)
        sys.stdout.write(artifacts.public_key_pem)
        sys.stdout.write(artifacts.csr_pem)
    return artifacts


def run_verify(path: str) -> bool:
    """Re-parse a CSR PEM file and check its signature."""
    from csr.signing import load_request, verify

    request = load_request(Path(path).read_text())
    ok = verify(request)
    names = [n.value for n in request.info.alt_names]
    common_name = request.info.subject.common_name or "<absent>"
    if ok:
        log.info("signature valid", path=path, common_name=common_name, alt_names=names)
    else:
        log.error("signature INVALID", path=path, common_name=common_name)
    return ok


# ── CLI ───────────────────────────────────────────────────────────────────────


def _key_size_arg(text: str) -> int:
    from config import check_key_size

    try:
        return check_key_size(int(text))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def main(argv: Optional[list[str]] = None) -> None:
    from config import settings
    from csr.errors import CsrError

    parser = argparse.ArgumentParser(
        description="RSA key pair and PKCS#10 CSR generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --generate
  python main.py --generate --cn someone@example.com --email someone@example.com
  python main.py --generate --key-size 2048 --no-save
  python main.py --verify ./csr-out/csr-20261019T063000000000Z.csr
        """,
    )
    parser.add_argument("--generate", action="store_true", help="Generate a key pair and CSR")
    parser.add_argument("--verify", metavar="FILE", help="Verify the signature of a CSR PEM file")
    parser.add_argument("--cn", help="Subject commonName (default: CSR_COMMON_NAME)")
    parser.add_argument("--email", help="rfc822Name subjectAltName (default: CSR_EMAIL)")
    parser.add_argument("--key-size", type=_key_size_arg, metavar="BITS", help="RSA modulus size (default: RSA_KEY_SIZE)")
    parser.add_argument("--out-dir", metavar="DIR", help="Output directory (default: OUTPUT_DIR)")
    parser.add_argument("--no-save", action="store_true", help="Print all PEMs to stdout instead of writing files")

    args = parser.parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if not args.generate and not args.verify:
        parser.print_help()
        sys.exit(1)

    try:
        if args.verify:
            if not run_verify(args.verify):
                sys.exit(1)
        else:
            run_generate(
                common_name=args.cn,
                email=args.email,
                key_size=args.key_size,
                output_dir=args.out_dir,
                save=not args.no_save,
            )
    except (CsrError, OSError) as exc:
        log.error("csr command failed", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
