# finmemory/validate_env.py
"""Valida as variáveis de ambiente antes do deploy.

Uso:
  finmemory-validate-env            # relatório completo
  finmemory-validate-env --quiet    # só o código de saída (0 = ok, 1 = faltando)
"""
import argparse
import logging
import os
import sys

from finmemory.config import OPTIONAL_ENV_VARS, REQUIRED_ENV_VARS, missing_env_vars
from finmemory.utils.logging_setup import setup_logging

logger = logging.getLogger("finmemory.validate_env")


def report(environ=None) -> int:
    env = os.environ if environ is None else environ
    missing = missing_env_vars(env)

    for name, description in REQUIRED_ENV_VARS.items():
        if name in missing:
            logger.error("FALTANDO  %s  (%s)", name, description)
        else:
            logger.info("ok        %s", name)
    for name, description in OPTIONAL_ENV_VARS.items():
        if not env.get(name):
            logger.info("opcional  %s não configurada (%s)", name, description)

    if missing:
        logger.error("%d variável(is) obrigatória(s) faltando: %s", len(missing), ", ".join(missing))
        return 1
    logger.info("Todas as variáveis obrigatórias estão configuradas.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Valida as variáveis de ambiente do FinMemory.")
    parser.add_argument("--quiet", action="store_true", help="não imprime o relatório")
    args = parser.parse_args(argv)

    setup_logging("CRITICAL" if args.quiet else "INFO")
    return report()


if __name__ == "__main__":
    sys.exit(main())
