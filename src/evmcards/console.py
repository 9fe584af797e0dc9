"""
evmcards console

Line-oriented front-end for the card engine. Contract functions come from
loaded ABI files or ad-hoc signatures; arguments are entered field by field;
results appear as cards that can be navigated and acted on.
"""

import cmd
import shlex
import time
from typing import Dict, List, Optional

from evmcards.abi.methods import ContractAbi, MethodRef, load_abi_file
from evmcards.cards.actions import CardAction
from evmcards.cards.modes import MenuOpen, TracerConfigEdit, TracerSelect
from evmcards.cards.render import render_card
from evmcards.cards.tracers import TracerKind
from evmcards.core.session import Session
from evmcards.forms.form import FormState, ParameterForm
from evmcards.utils.colors import (
    address, bold, cyan, dim, error, function_name, info, success, warning,
)
from evmcards.utils.exceptions import EvmCardsError, format_exception_message
from evmcards.utils.logging import get_logger

logger = get_logger("console")

# Commands that still run while a form is open; any other line is field text
FORM_COMMANDS = ("set", "tab", "btab", "toggle", "submit", "cancel", "form", "EOF")
# Prefix that runs any other command while a form is open ("!cards")
COMMAND_ESCAPE = "!"


class CardConsole(cmd.Cmd):
    """Interactive console over a Session."""

    intro = f"""
{bold('evmcards')} - contract calls as cards
Type {info('help')} for commands.
Use {info('load')} to load an ABI, {info('invoke')} to call a function, {info('menu')} to act on the selected card.
While a form is open, text fills the focused field; prefix other commands with {info('!')}.
"""

    def __init__(self, session: Session, stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.session = session
        self.methods: List[MethodRef] = []
        self._shown: Dict[int, object] = {}  # card id -> payload last printed
        self._deployments_seen = 0

    @property
    def prompt(self):
        status = ""
        if self.session.connected is False:
            status = f" {dim('|')} {error('disconnected')}"
        form = self.session.form
        if form is not None and form.focused is not None:
            return f'{cyan("(evmcards")} {dim("|")} {function_name(form.title)} {dim("|")} {info(form.focused.label)}{status}{cyan(")")} '
        return f'{cyan("(evmcards")}{status}{cyan(")")} '

    def _print(self, text: str = "") -> None:
        self.stdout.write(f"{text}\n")

    # ------------------------------------------------------------------
    # Loop hooks
    # ------------------------------------------------------------------

    def onecmd(self, line):
        """Route form text to the focused field and keep the console alive on errors."""
        try:
            if self.session.form is not None:
                stripped = line.strip()
                if stripped.startswith(COMMAND_ESCAPE):
                    line = stripped[len(COMMAND_ESCAPE):]
                elif stripped and stripped.split(None, 1)[0] not in FORM_COMMANDS:
                    self._fill(stripped)
                    return False
            return super().onecmd(line)
        except EvmCardsError as e:
            self._report(e)
        except Exception as e:
            logger.debug("Command failed", exc_info=True)
            self._print(f"{error('Error:')} {e}")
        return False

    def postcmd(self, stop, line):
        self._refresh()
        return stop

    def emptyline(self):
        """Handle empty line (don't repeat last command)"""
        self._refresh()

    def default(self, line):
        self._print(f"{error('Unknown command:')} '{line}'")
        self._print(f"Type {info('help')} to see available commands.")

    def _refresh(self, timeout: Optional[float] = None) -> None:
        self.session.pump(timeout)
        for card in self.session.store:
            if self._shown.get(card.id) is not card.payload:
                self._shown[card.id] = card.payload
                for line in render_card(card, self.session.store.is_selected(card)):
                    self._print(line)
        # Functions of freshly deployed contracts become invokable
        deployments = self.session.deployments
        for deployment in deployments[self._deployments_seen:]:
            self.load_abi(deployment.abi, deployment.abi.methods(deployment.address))
        self._deployments_seen = len(deployments)

    def _report(self, e: Exception) -> None:
        self._print(error(format_exception_message(e)))

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    def do_load(self, arg):
        """Load a contract ABI. Usage: load <abi.json> <address>"""
        parts = shlex.split(arg)
        if len(parts) != 2:
            self._print("Usage: load <abi.json> <address>")
            return
        try:
            abi = load_abi_file(parts[0])
            methods = abi.methods(parts[1])
        except (OSError, ValueError, EvmCardsError) as e:
            self._report(e)
            return
        self.load_abi(abi, methods)

    def load_abi(self, abi: ContractAbi, methods: List[MethodRef]) -> None:
        self.session.abi.merge(abi)
        start = len(self.methods)
        self.methods.extend(methods)
        self._print(success(f"Loaded {len(methods)} functions at {methods[0].target if methods else '-'}"))
        for i, method in enumerate(methods, start):
            self._print(self._method_line(i, method))

    def _method_line(self, index: int, method: MethodRef) -> str:
        flags = "view" if method.is_view else ("payable" if method.is_payable else "tx")
        return f"  [{index}] {function_name(method.signature)} {dim(flags)} @ {address(method.target)}"

    def do_methods(self, arg):
        """List loaded functions"""
        if not self.methods:
            self._print("No functions loaded. Use 'load <abi.json> <address>'.")
            return
        for i, method in enumerate(self.methods):
            self._print(self._method_line(i, method))

    def _find_method(self, key: str) -> Optional[MethodRef]:
        if key.isdigit():
            index = int(key)
            return self.methods[index] if index < len(self.methods) else None
        matches = [m for m in self.methods if key in (m.name, m.signature)]
        if len(matches) > 1:
            self._print(warning(f"'{key}' is ambiguous; use the index or full signature"))
            return None
        return matches[0] if matches else None

    def do_invoke(self, arg):
        """Invoke a loaded function. Usage: invoke <index|name|signature>"""
        method = self._find_method(arg.strip())
        if method is None:
            self._print(error(f"No loaded function '{arg.strip()}'"))
            return
        self._open(method)

    def do_call(self, arg):
        """Call a view function by signature. Usage: call <signature> <address>"""
        self._adhoc(arg, is_view=True, is_payable=False)

    def do_send(self, arg):
        """Send a transaction by signature. Usage: send <signature> <address> [payable]"""
        self._adhoc(arg, is_view=False, is_payable=arg.rstrip().endswith(" payable"))

    def _adhoc(self, arg: str, is_view: bool, is_payable: bool) -> None:
        parts = shlex.split(arg)
        if parts and parts[-1] == "payable":
            parts = parts[:-1]
        if len(parts) != 2:
            self._print("Usage: <signature> <address>")
            return
        try:
            method = MethodRef.from_signature(parts[0], target=parts[1], is_payable=is_payable, is_view=is_view)
        except (ValueError, EvmCardsError) as e:
            self._report(e)
            return
        self._open(method)

    def do_deploy(self, arg):
        """Deploy a contract from a Forge/Hardhat artifact. Usage: deploy <artifact.json>"""
        parts = shlex.split(arg)
        if len(parts) != 1:
            self._print("Usage: deploy <artifact.json>")
            return
        try:
            abi = load_abi_file(parts[0])
            form = self.session.open_deploy_form(abi)
        except (OSError, ValueError, EvmCardsError) as e:
            self._report(e)
            return
        self._start(form)

    def _open(self, method: MethodRef) -> None:
        try:
            form = self.session.open_form(method)
        except EvmCardsError as e:
            self._report(e)
            return
        self._start(form)

    def _start(self, form: ParameterForm) -> None:
        if not form.fields:
            self.do_submit("")
            return
        self._show_form(form)

    # ------------------------------------------------------------------
    # Parameter form
    # ------------------------------------------------------------------

    def _show_form(self, form: ParameterForm) -> None:
        self._print(bold(form.title))
        for i, field in enumerate(form.fields):
            marker = ">" if i == form.focus_index else " "
            self._print(f"{marker} {field.label} ({dim(field.type_label)}): {field.raw_text}")
            if field.error is not None:
                self._print("    " + error(field.error.message))

    def _fill(self, text: str) -> None:
        form = self.session.form
        form.set_text(text)
        field = form.focused
        if field.error is not None:
            self._print("  " + error(field.error.message))
            return
        if form.focus_index == len(form.fields) - 1:
            self.do_submit("")
        else:
            form.focus_next()

    def _require_form(self) -> Optional[ParameterForm]:
        if self.session.form is None:
            self._print("No form is open.")
        return self.session.form

    def do_form(self, arg):
        """Show the open form"""
        form = self._require_form()
        if form is not None:
            self._show_form(form)

    def do_set(self, arg):
        """Set the focused field. Usage: set <text>"""
        form = self._require_form()
        if form is None:
            return
        form.set_text(arg)
        if form.focused.error is not None:
            self._print("  " + error(form.focused.error.message))

    def do_tab(self, arg):
        """Focus the next field"""
        form = self._require_form()
        if form is not None:
            form.focus_next()

    def do_btab(self, arg):
        """Focus the previous field"""
        form = self._require_form()
        if form is not None:
            form.focus_prev()

    def do_toggle(self, arg):
        """Toggle the focused bool field"""
        form = self._require_form()
        if form is None:
            return
        if not form.focused.is_bool:
            self._print(warning(f"{form.focused.label} is not a bool field"))
            return
        form.toggle()
        self._print(f"  {form.focused.label} = {form.focused.raw_text}")

    def do_submit(self, arg):
        """Submit the open form"""
        form = self._require_form()
        if form is None:
            return
        if self.session.submit_form():
            self._print(dim(f"{form.title} submitted"))
            return
        if form.state is FormState.INVALID:
            field = form.fields[form.invalid_index]
            self._print(error(f"{field.label}: {field.error.message}"))

    def do_cancel(self, arg):
        """Discard the open form"""
        if self._require_form() is not None:
            self.session.cancel_form()
            self._print(dim("Cancelled"))

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def do_cards(self, arg):
        """List all cards"""
        if not len(self.session.store):
            self._print("No cards.")
            return
        for card in self.session.store:
            for line in render_card(card, self.session.store.is_selected(card)):
                self._print(line)

    def _show_selected(self) -> None:
        card = self.session.store.selected
        if card is not None:
            for line in render_card(card, True):
                self._print(line)

    def do_next(self, arg):
        """Select the next card (wraps)"""
        self.session.select_next()
        self._show_selected()

    def do_prev(self, arg):
        """Select the previous card (wraps)"""
        self.session.select_prev()
        self._show_selected()

    def do_select(self, arg):
        """Select a card by id. Usage: select <id>"""
        try:
            self.session.store.select(int(arg))
        except (ValueError, KeyError):
            self._print(error(f"No card {arg}"))
            return
        self._show_selected()

    def do_clear(self, arg):
        """Remove all cards"""
        self.session.clear()
        self._shown.clear()
        self._print(dim("Cleared"))

    def do_recheck(self, arg):
        """Resume polling a stalled transaction. Usage: recheck <card id>"""
        try:
            started = self.session.recheck(int(arg))
        except ValueError:
            self._print("Usage: recheck <card id>")
            return
        except EvmCardsError as e:
            self._report(e)
            return
        self._print(dim("Polling resumed" if started else "Already polling"))

    def do_wait(self, arg):
        """Wait for pending results. Usage: wait [seconds]"""
        try:
            deadline = time.monotonic() + float(arg or 10)
        except ValueError:
            self._print("Usage: wait [seconds]")
            return
        while time.monotonic() < deadline:
            self._refresh(timeout=0.1)
            busy = self.session.waiting_slots or self.session.store.pending()
            if not busy:
                break

    # ------------------------------------------------------------------
    # Actions and tracers
    # ------------------------------------------------------------------

    def do_menu(self, arg):
        """Open the action menu of the selected card"""
        menu = self.session.open_menu()
        if menu is None:
            self._print("No actions for the selected card.")
            return
        for i, action in enumerate(menu.actions):
            self._print(f"  [{i}] {action.title}")

    def do_pick(self, arg):
        """Choose an entry of the open menu. Usage: pick <index>"""
        mode = self.session.modes.current
        try:
            index = int(arg)
        except ValueError:
            self._print("Usage: pick <index>")
            return
        try:
            if isinstance(mode, MenuOpen):
                self._run_action(mode.menu.choose(index))
            elif isinstance(mode, TracerSelect):
                self._choose_tracer(mode.choices[index])
            else:
                self._print("No menu is open. Use 'menu' first.")
        except IndexError:
            self._print(error(f"No entry {index}"))

    def _run_action(self, action: CardAction) -> None:
        self.session.perform(action)
        mode = self.session.modes.current
        if isinstance(mode, TracerSelect):
            for i, kind in enumerate(mode.choices):
                self._print(f"  [{i}] {kind.title}")

    def do_tracer(self, arg):
        """Choose a tracer by name. Usage: tracer <call|prestate|oplog|flatcall>"""
        try:
            kind = TracerKind(arg.strip().lower())
        except ValueError:
            self._print(error(f"Unknown tracer '{arg}'"))
            return
        self._choose_tracer(kind)

    def _choose_tracer(self, kind: TracerKind) -> None:
        try:
            config = self.session.choose_tracer(kind)
        except EvmCardsError as e:
            self._report(e)
            return
        self._show_tracer_config(config)

    def _show_tracer_config(self, config) -> None:
        self._print(bold(config.kind.title))
        if not config.options:
            self._print(dim("  (no options)"))
        for name, enabled in config.options.items():
            self._print(f"  {name} = {'true' if enabled else 'false'}")
        self._print(dim("Use 'option <name>' to toggle, 'confirm' to run."))

    def do_option(self, arg):
        """Toggle a tracer option. Usage: option <name>"""
        mode = self.session.modes.current
        if not isinstance(mode, TracerConfigEdit):
            self._print("No tracer configuration is open.")
            return
        try:
            self.session.toggle_tracer_option(arg.strip())
        except KeyError as e:
            self._print(error(str(e.args[0])))
            return
        self._show_tracer_config(mode.config)

    def do_confirm(self, arg):
        """Run the configured trace"""
        try:
            self.session.confirm_trace()
        except EvmCardsError as e:
            self._report(e)

    def do_back(self, arg):
        """Close the top menu"""
        self.session.back()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def do_status(self, arg):
        """Show connection, account and pending transactions"""
        session = self.session
        state = {None: dim("unknown"), True: success("connected"), False: error("disconnected")}
        self._print(f"RPC: {session.client.rpc_url} ({state[session.connected]})")
        if session.account is not None:
            self._print(f"Account: {address(session.account.address or '-')}")
            if session.account.balance_wei is not None:
                self._print(f"Balance: {session.account.balance_wei} wei")
            self._print(f"Chain id: {session.account.chain_id}")
        self._print(f"Cards: {len(session.store)}, pending: {len(session.pending_cards())}")

    def do_refresh(self, arg):
        """Refresh account balance and chain id"""
        self.session.refresh_account()

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def do_exit(self, arg):
        """Exit the console"""
        self.session.shutdown()
        self._print("Goodbye!")
        return True

    def do_quit(self, arg):
        """Alias for exit"""
        return self.do_exit(arg)

    def do_q(self, arg):
        """Alias for exit"""
        return self.do_exit(arg)

    def do_EOF(self, arg):
        """Handle Ctrl-D"""
        self._print()
        return self.do_exit(arg)

    def do_help(self, arg):
        """Show help information."""
        if arg:
            cmd.Cmd.do_help(self, arg)
            return
        self._print(f"\n{bold('evmcards Console Commands')}")
        self._print(dim("=" * 60))

        self._print(f"\n{cyan('Functions:')}")
        self._print(f"  {info('load')} <abi> <addr>     - Load an ABI bound to an address")
        self._print(f"  {info('methods')}               - List loaded functions")
        self._print(f"  {info('invoke')} <name|index>   - Fill arguments and run a function")
        self._print(f"  {info('call')} <sig> <addr>     - Call a view function by signature")
        self._print(f"  {info('send')} <sig> <addr>     - Send a transaction by signature")
        self._print(f"  {info('deploy')} <artifact>     - Deploy a contract (constructor form)")

        self._print(f"\n{cyan('Argument Form:')}")
        self._print(f"  <text>                  - Fill the focused field and move on")
        self._print(f"  !<command>              - Run any other command while the form is open")
        self._print(f"  {info('set')} <text>            - Set the focused field (text may be a command name)")
        self._print(f"  {info('tab')} / {info('btab')}            - Next / previous field")
        self._print(f"  {info('toggle')}                - Flip a bool field")
        self._print(f"  {info('submit')} / {info('cancel')}       - Submit or discard the form")

        self._print(f"\n{cyan('Cards:')}")
        self._print(f"  {info('cards')}                 - List all cards")
        self._print(f"  {info('next')} / {info('prev')}           - Move the selection (wraps)")
        self._print(f"  {info('select')} <id>           - Select a card")
        self._print(f"  {info('clear')}                 - Remove all cards")
        self._print(f"  {info('recheck')} <id>          - Resume polling a stalled transaction")
        self._print(f"  {info('wait')} [seconds]        - Wait for pending results")

        self._print(f"\n{cyan('Actions:')}")
        self._print(f"  {info('menu')}                  - Actions of the selected card")
        self._print(f"  {info('pick')} <index>          - Choose a menu entry")
        self._print(f"  {info('tracer')} <name>         - Choose a tracer")
        self._print(f"  {info('option')} <name>         - Toggle a tracer option")
        self._print(f"  {info('confirm')}               - Run the trace")
        self._print(f"  {info('back')}                  - Close the top menu")

        self._print(f"\n{cyan('Other Commands:')}")
        self._print(f"  {info('status')} / {info('refresh')}      - Connection and account")
        self._print(f"  {info('help')} [command]        - Show help")
        self._print(f"  {info('exit')} (quit/q)         - Exit")
        self._print(dim("=" * 60) + "\n")
