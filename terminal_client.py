#!/usr/bin/env python3
"""Terminal client for the appointment booking API.

Usage:
    python terminal_client.py

Patient commands:  doctors [speciality] | slots <doc> | book <doc> <day> <time> [reason]
                   my | cancel <id> | upload <path>
Provider commands: dash | appointments | complete <id> | cancel <id> | profile
Session commands:  login <email> <password> | register <name> <email> <password> [provider]
                   logout | quit
"""
import shlex

from medibook import config
from medibook.documents import DocumentValidationError
from medibook.logging_config import setup_structured_logging
from medibook.models import Role, format_slot_date
from medibook.session import AppState, ProviderMode


# ANSI color codes
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def print_colored(text: str, color: str = Colors.RESET):
    """Print colored text."""
    print(f"{color}{text}{Colors.RESET}")


def format_week(flow) -> str:
    lines = []
    for index, slots in enumerate(flow.week):
        if not slots:
            lines.append(f"  [{index}] (no slots)")
            continue
        day = slots[0].starts_at.strftime("%a %d %b")
        times = ", ".join(slot.time for slot in slots)
        lines.append(f"  [{index}] {day}: {times}")
    return "\n".join(lines)


def format_appointment(apt, for_provider: bool = False) -> str:
    if for_provider:
        who = apt.patient_name or apt.patient_id or "-"
        age = apt.patient_age()
        if age is not None:
            who = f"{who} ({age})"
    else:
        who = apt.provider_name or apt.provider_id
    return (
        f"{apt.id}  {format_slot_date(apt.slot_date)} {apt.slot_time}  {who}  "
        f"{config.CURRENCY_SYMBOL}{apt.amount:g}  [{apt.status.value}]"
    )


def _patient_command(state: AppState, cmd: str, args: list) -> str:
    if cmd == "doctors":
        providers = state.directory.by_speciality(" ".join(args) if args else None)
        if not providers:
            return "No doctors found."
        return "\n".join(
            f"{p.id}  {p.name}  {p.speciality.value}  {config.CURRENCY_SYMBOL}{p.fees:g}"
            f"{'' if p.is_real else '  (demo)'}"
            for p in providers
        )

    if cmd == "slots":
        if not args:
            return "Usage: slots <doc>"
        flow = state.begin_booking(args[0])
        if flow is None:
            return "Doctor not found."
        return flow.load_error or format_week(flow)

    if cmd == "book":
        if len(args) < 3:
            return "Usage: book <doc> <day> <time> [reason]"
        flow = state.begin_booking(args[0])
        if flow is None:
            return "Doctor not found."
        if not args[1].isdigit() or not flow.select_day(int(args[1])):
            return "No slots on that day."
        if not flow.select_time(args[2]):
            return "That time is not available."
        flow.set_reason(" ".join(args[3:]))
        outcome = flow.submit()
        if outcome.redirect_to == "/login":
            return "Please log in to book an appointment."
        return outcome.error or outcome.message

    if cmd == "my":
        appointments = state.mode.appointments
        if not appointments.refresh():
            return appointments.error
        return "\n".join(format_appointment(a) for a in appointments.items) or "No appointments."

    if cmd == "cancel":
        if not args:
            return "Usage: cancel <id>"
        appointments = state.mode.appointments
        if appointments.get(args[0]) is None:
            appointments.refresh()
        result = appointments.cancel(args[0])
        return result.message if result.success else result.error

    if cmd == "upload":
        if not args:
            return "Usage: upload <path>"
        try:
            result = state.documents.upload_file(args[0])
        except DocumentValidationError as e:
            return str(e)
        except OSError as e:
            return f"Could not read file: {e}"
        if result.success:
            return f"Uploaded {result.document.file_name} ({result.document.id})"
        return f"Upload failed during {result.step}: {result.error}"

    return f"Unknown command: {cmd}"


def _provider_command(state: AppState, cmd: str, args: list) -> str:
    mode = state.mode
    appointments = mode.appointments

    if cmd in ("dash", "appointments"):
        if not appointments.refresh():
            return appointments.error
        if cmd == "appointments":
            listing = (format_appointment(a, for_provider=True) for a in appointments.items)
            return "\n".join(listing) or "No appointments."
        dash = mode.dashboard()
        latest = "\n".join(
            f"  {format_appointment(a, for_provider=True)}" for a in dash.latest_appointments
        )
        return (
            f"Earnings: {config.CURRENCY_SYMBOL}{dash.earnings:g}\n"
            f"Appointments: {dash.appointments}\n"
            f"Patients: {dash.patients}\n"
            f"Latest:\n{latest or '  none'}"
        )

    if cmd in ("cancel", "complete"):
        if not args:
            return f"Usage: {cmd} <id>"
        if appointments.get(args[0]) is None:
            appointments.refresh()
        action = appointments.cancel if cmd == "cancel" else appointments.complete
        result = action(args[0])
        return result.message if result.success else result.error

    if cmd == "profile":
        mode.load_profile()
        profile = mode.profile
        text = (
            f"{profile.name} - {profile.degree} {profile.speciality.value if profile.speciality else ''}\n"
            f"{profile.experience}  fee {config.CURRENCY_SYMBOL}{profile.fees:g}\n{profile.about}"
        )
        return f"{mode.profile_error}\n{text}" if mode.profile_error else text

    return f"Unknown command: {cmd}"


def handle_command(state: AppState, line: str) -> str:
    """
    Run one command line against the application state.

    Returns:
        Text to show the user
    """
    try:
        parts = shlex.split(line)
    except ValueError as e:
        return f"Could not parse command: {e}"
    if not parts:
        return ""

    cmd, args = parts[0].lower(), parts[1:]

    if cmd == "login":
        if len(args) != 2:
            return "Usage: login <email> <password>"
        result = state.login(args[0], args[1])
        return result.message if result.success else result.error

    if cmd == "register":
        if len(args) < 3:
            return "Usage: register <name> <email> <password> [provider]"
        role = Role.PROVIDER if len(args) > 3 and args[3] == "provider" else Role.PATIENT
        result = state.register(args[0], args[1], args[2], role=role)
        return result.message if result.success else result.error

    if cmd == "logout":
        return state.logout()

    if isinstance(state.mode, ProviderMode):
        return _provider_command(state, cmd, args)
    return _patient_command(state, cmd, args)


def main():
    """Main interactive loop."""
    setup_structured_logging("WARNING", json_output=False)

    state = AppState()
    state.bootstrap()
    state.directory.refresh()

    print_colored("=" * 60, Colors.BLUE)
    print_colored("🏥 Doctor Appointments - Terminal Client", Colors.BOLD)
    print_colored("=" * 60, Colors.BLUE)
    print_colored(f"API: {state.api.base_url}", Colors.YELLOW)
    if state.directory.warning:
        print_colored(state.directory.warning, Colors.YELLOW)
    if state.user:
        print_colored(f"Signed in as {state.user.name} ({state.user.role.value})", Colors.GREEN)
    print()

    while True:
        try:
            user_input = input(f"{state.mode.role.value}> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if user_input.strip().lower() in ("quit", "exit"):
            print_colored("👋 Bye!", Colors.YELLOW)
            break

        output = handle_command(state, user_input)
        if output:
            print(output)


if __name__ == "__main__":
    main()
