"""Command-line interface for the userdesk users client."""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from userdesk.api_client import UserDeskError, UsersAPIClient
from userdesk.cache import QueryCache
from userdesk.config import ClientConfig, Settings, load_settings
from userdesk.forms import Editing, FormValidationError
from userdesk.models import USER_FIELDS, UserRecord
from userdesk.sync import UserSync

logger = logging.getLogger("userdesk.main")

FIELD_LABELS: Dict[str, str] = {
    "fname": "First name",
    "lname": "Last name",
    "email": "Email",
    "birthday": "Birthday (YYYY-MM-DD)",
}


def _connection_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--config", default=None, help="Path to a userdesk YAML configuration file")
    parent.add_argument("--api-url", default=None, help="Base URL of the users API")
    parent.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    return parent


def _add_field_options(parser: argparse.ArgumentParser, *, required: bool) -> None:
    for name in USER_FIELDS:
        parser.add_argument(f"--{name}", required=required, default=None, help=FIELD_LABELS[name])


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage user records through the users REST API")
    subparsers = parser.add_subparsers(dest="command")
    common = _connection_options()

    parser.set_defaults(command="console")

    subparsers.add_parser("console", parents=[common], help="Launch the interactive user form console")
    subparsers.add_parser("list", parents=[common], help="List users")

    add_parser = subparsers.add_parser("add", parents=[common], help="Create a user")
    _add_field_options(add_parser, required=True)

    update_parser = subparsers.add_parser("update", parents=[common], help="Update an existing user")
    update_parser.add_argument("user_id", help="Identifier of the user to update")
    _add_field_options(update_parser, required=False)

    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete a user")
    delete_parser.add_argument("user_id", help="Identifier of the user to delete")

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the development users API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 5000)")
    serve_parser.add_argument("--data-file", default=None, help="JSON file used to persist users")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"console", "list", "add", "update", "delete", "serve"}

    if not args_list:
        args_list = ["console"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["console", *args_list]

    return parser.parse_args(args_list)


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    api = ClientConfig.from_dict(
        {
            "base_url": args.api_url or settings.api.base_url,
            "timeout": settings.api.timeout if args.timeout is None else args.timeout,
        }
    )
    return replace(settings, api=api)


def _print_users(users: List[UserRecord]) -> None:
    if not users:
        print("No users found.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'Name':<28}  {'Email':<28}  Birthday")
    print("-" * 108)
    for user in users:
        print(f"{user.id:<36}  {user.display_name:<28}  {user.email:<28}  {user.birthday}")


def _print_form_errors(exc: FormValidationError) -> None:
    print("The form has errors:")
    for name, message in exc.errors.items():
        print(f"  {FIELD_LABELS.get(name, name)}: {message}*")


def _find_user(sync: UserSync, user_id: str) -> Optional[UserRecord]:
    for user in sync.list_users():
        if user.id == user_id:
            return user
    return None


def _submit(sync: UserSync) -> bool:
    action = "Updated" if isinstance(sync.mode, Editing) else "Created"
    try:
        result = sync.submit()
    except FormValidationError as exc:
        _print_form_errors(exc)
        return False
    except UserDeskError as exc:
        print(f"Request failed: {exc}")
        return False

    if result is not None:
        print(f"{action} user {result.id}: {result.display_name} <{result.email}>")
    else:
        print(f"{action} user.")
    return True


def _cmd_list(sync: UserSync) -> int:
    try:
        users = sync.list_users()
    except UserDeskError as exc:
        print(f"Failed to load users: {exc}")
        return 1
    _print_users(users)
    return 0


def _cmd_add(sync: UserSync, args: argparse.Namespace) -> int:
    for name in USER_FIELDS:
        sync.form.set_value(name, getattr(args, name) or "")
    return 0 if _submit(sync) else 1


def _cmd_update(sync: UserSync, args: argparse.Namespace) -> int:
    try:
        record = _find_user(sync, args.user_id)
    except UserDeskError as exc:
        print(f"Failed to load users: {exc}")
        return 1
    if record is None:
        print(f"User {args.user_id} was not found.")
        return 1

    sync.edit_load(record)
    for name in USER_FIELDS:
        value = getattr(args, name)
        if value is not None:
            sync.form.set_value(name, value)
    return 0 if _submit(sync) else 1


def _cmd_delete(sync: UserSync, user_id: str) -> int:
    try:
        sync.delete(user_id)
    except UserDeskError as exc:
        print(f"Failed to delete user: {exc}")
        return 1
    print(f"Deleted user {user_id}.")
    return 0


def _fill_form(sync: UserSync, prompt: Callable[[str], str]) -> None:
    print("\nEnter user details (press Enter to keep the current value).")
    for name in USER_FIELDS:
        current = sync.form.get_value(name)
        suffix = f" [{current}]" if current else ""
        value = prompt(f"{FIELD_LABELS[name]}{suffix}: ").strip()
        if value:
            sync.form.set_value(name, value)


def _edit_user(sync: UserSync, prompt: Callable[[str], str]) -> None:
    user_id = prompt("ID of the user to edit (blank to cancel): ").strip()
    if not user_id:
        print("Edit cancelled.")
        return
    try:
        record = _find_user(sync, user_id)
    except UserDeskError as exc:
        print(f"Failed to load users: {exc}")
        return
    if record is None:
        print(f"User {user_id} was not found.")
        return
    sync.edit_load(record)
    print(f"Loaded {record.display_name} into the form.")


def _delete_user(sync: UserSync, prompt: Callable[[str], str]) -> None:
    user_id = prompt("ID of the user to delete (blank to cancel): ").strip()
    if not user_id:
        print("Delete cancelled.")
        return
    _cmd_delete(sync, user_id)


def _run_console(sync: UserSync, prompt: Callable[[str], str] = input) -> None:
    """Provide an interactive form for creating, editing and deleting users."""

    print("userdesk user console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            editing = sync.form.editing
            legend = f"Edit User ({editing.display_name})" if editing else "Add User"
            print(f"Form: {legend}")
            print("Select an option:")
            print("  1) List users")
            print("  2) Fill in the form")
            print(f"  3) {'Update' if editing else 'Submit'}")
            print("  4) Edit a user")
            print("  5) Cancel edit")
            print("  6) Delete a user")
            print("  7) Exit")

            choice = prompt("Enter choice [1-7]: ").strip()

            if choice == "1":
                _cmd_list(sync)
            elif choice == "2":
                _fill_form(sync, prompt)
            elif choice == "3":
                _submit(sync)
            elif choice == "4":
                _edit_user(sync, prompt)
            elif choice == "5":
                sync.cancel_edit()
                print("Form cleared.")
            elif choice == "6":
                _delete_user(sync, prompt)
            elif choice == "7":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except (KeyboardInterrupt, EOFError):
        print("\nExiting user console.")


def _serve(settings: Settings, args: argparse.Namespace) -> None:
    from userdesk.server import create_app
    import uvicorn

    server = settings.server
    host = args.host or server.host
    port = args.port or server.port
    data_file = Path(args.data_file).expanduser() if args.data_file else server.data_file

    if data_file is not None:
        logger.info("Persisting users to %s", data_file)
    logger.info("Starting users API on http://%s:%s", host, port)

    app = create_app(data_file=data_file)
    uvicorn.run(app, host=host, port=port, log_level="info")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = _resolve_settings(args)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}")
        return 2

    if args.command == "serve":
        _serve(settings, args)
        return 0

    with UsersAPIClient(settings.api) as api:
        sync = UserSync(api, QueryCache())
        if args.command == "list":
            return _cmd_list(sync)
        if args.command == "add":
            return _cmd_add(sync, args)
        if args.command == "update":
            return _cmd_update(sync, args)
        if args.command == "delete":
            return _cmd_delete(sync, args.user_id)

        logger.info("Using users API at %s", api.base_url)
        _run_console(sync)
    return 0


if __name__ == "__main__":
    sys.exit(main())
