"""The Command Line Interface for the messenger.

Generates keys, publishes and fetches public keys, and sends or reads encrypted messages through the key server.
Usage errors exit with status 2, unusable keys, plaintexts or ciphertexts with status 3, and unreadable key files
with status 1. Missing keys, empty mailboxes and server failures are reported on a single line.

Typical usage example:

    messenger keyGen 1024
    messenger sendKey alice@example.com
    messenger getKey bob@example.com
    messenger sendMsg bob@example.com "Hello Bob"
    messenger getMsg alice@example.com
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import logging
import pathlib
import sys
import typing

import requests

import messenger
from messenger import actions
from messenger import keygen
from messenger.client import KeyServerClient
from messenger.codec import MalformedKeyError
from messenger.records import KeyStore
from messenger.records import RecordError
from messenger.rsa import InvalidCiphertextError
from messenger.rsa import InvalidPlaintextError

EXIT_CRYPTO = 3


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Type = str


help_dict: dict[str, HelpData] = {
    "keyGen": HelpData("Generate a public and private key pair. These will be stored locally on the disk."),
    "sendKey": HelpData("Send the public key to the server and associate it with the email address. "
                        "Updates the local private key to register the email address."),
    "getKey": HelpData("Retrieve the public key associated with the email address."),
    "sendMsg": HelpData("Send the plaintext message to the email address."),
    "getMsg": HelpData("Retrieve and print a message for the email address. "
                       "If the private key of the email address is unknown, the message can't be decoded."),
    "keysize": HelpData("Key size (in bits). Must be a positive integer."),
    "email": HelpData("Email address. Must contain an '@'."),
    "text": HelpData("Plaintext message (ASCII)."),
    "server": HelpData("Key server URL. Defaults to $MESSENGER_SERVER or the public course server."),
    "key_dir": HelpData("Directory holding the key files.", pathlib.Path),
}


def keysize(value: str) -> int:
    try:
        size = int(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError("keyGen takes a positive integer as an argument.") from err
    if size < 1:
        raise argparse.ArgumentTypeError("keyGen takes a positive integer as an argument.")
    if size < keygen.MIN_KEY_SIZE:
        raise argparse.ArgumentTypeError(f"keyGen needs a key size of at least {keygen.MIN_KEY_SIZE} bits.")
    return size


def email_address(value: str) -> str:
    if "@" not in value:
        raise argparse.ArgumentTypeError(f"{value!r} is not an email address.")
    return value


emailp = argparse.ArgumentParser(add_help=False)
emailp.add_argument("email", type=email_address, help=help_dict["email"].description)
corep = argparse.ArgumentParser(prog="messenger", description="Send secure messages using public key encryption.")
corep.add_argument("--version", "-V", action="version", version=f"%(prog)s {messenger.__version__}")
corep.add_argument("--server", "-s", help=help_dict["server"].description)
corep.add_argument("--key-dir",
                   "-k",
                   type=help_dict["key_dir"].format,
                   default=pathlib.Path("."),
                   help=help_dict["key_dir"].description)
corep.add_argument("--verbose", "-v", action="count", default=0, help="Log progress, repeat for debug output")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands", required=True)

keygenp = commands.add_parser("keyGen", help=help_dict["keyGen"].description)
keygenp.add_argument("keysize", type=keysize, help=help_dict["keysize"].description)
commands.add_parser("sendKey", parents=[emailp], help=help_dict["sendKey"].description)
commands.add_parser("getKey", parents=[emailp], help=help_dict["getKey"].description)
send_msg = commands.add_parser("sendMsg", parents=[emailp], help=help_dict["sendMsg"].description)
send_msg.add_argument("text", help=help_dict["text"].description)
commands.add_parser("getMsg", parents=[emailp], help=help_dict["getMsg"].description)


def setup_logging(verbose: int = 0) -> None:
    """Configure log level based on verbose argument."""
    logging.basicConfig(format="%(levelname)s:%(name)s:%(message)s")
    if verbose >= 2:
        logging.getLogger("messenger").setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger("messenger").setLevel(logging.INFO)


def run(args: argparse.Namespace) -> str | None:
    """Executes the parsed subcommand, returning the text to print if any."""
    store = KeyStore(args.key_dir)
    if args.subcommand == "keyGen":
        actions.key_gen(store, args.keysize)
        return None
    client = KeyServerClient(args.server)
    match args.subcommand:
        case "sendKey":
            return actions.send_key(store, client, args.email)
        case "getKey":
            return actions.get_key(store, client, args.email)
        case "sendMsg":
            return actions.send_msg(store, client, args.email, args.text)
        case "getMsg":
            return actions.get_msg(store, client, args.email)
    raise ValueError(f"Unknown subcommand {args.subcommand}")


def main(argv: list[str] | None = None) -> int:
    """Core Command Line Interface."""
    args = corep.parse_args(argv)
    setup_logging(args.verbose)
    try:
        out = run(args)
    except actions.ActionError as err:
        print(err)
        return 0
    except requests.RequestException as err:
        print(f"Error: {err}")
        return 0
    except (MalformedKeyError, InvalidPlaintextError, InvalidCiphertextError) as err:
        print(f"Error: {err}")
        return EXIT_CRYPTO
    except (RecordError, OSError) as err:
        print(f"Error: {err}")
        return 1
    if out is not None:
        print(out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
