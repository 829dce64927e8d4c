import os
from datetime import datetime
from colorama import Fore, Style, init
import pytz

init(autoreset=True)

TIMEZONE = pytz.timezone(os.getenv("LOG_TIMEZONE", "UTC"))

COLOR_CODES = [
    Fore.CYAN, Fore.GREEN, Fore.RED, Fore.YELLOW,
    Fore.BLUE, Fore.MAGENTA, Fore.WHITE, Style.BRIGHT, Style.RESET_ALL
]


class Logger:
    def __init__(self, log_to_file: bool = True, log_dir: str = "logs"):
        self.log_to_file = log_to_file
        self.log_dir = log_dir

        if log_to_file:
            os.makedirs(log_dir, exist_ok=True)
            self.log_file = os.path.join(
                log_dir,
                f"bot_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            )

    def _get_timestamp(self) -> str:
        return datetime.now(TIMEZONE).strftime('%Y-%m-%d %X %Z')

    def _write_to_file(self, message: str):
        if self.log_to_file:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                clean_message = message
                for code in COLOR_CODES:
                    clean_message = clean_message.replace(code, '')
                f.write(f"{self._get_timestamp()} | {clean_message}\n")

    def _emit(self, tag: str, color: str, message: str):
        log_msg = (
            f"{color + Style.BRIGHT}[{tag}]{Style.RESET_ALL} "
            f"{Fore.WHITE}{message}{Style.RESET_ALL}"
        )
        print(log_msg, flush=True)
        self._write_to_file(f"[{tag}] {message}")

    def info(self, message: str):
        self._emit("INFO", Fore.CYAN, message)

    def success(self, message: str):
        self._emit("SUCCESS", Fore.GREEN, message)

    def error(self, message: str):
        self._emit("ERROR", Fore.RED, message)

    def warning(self, message: str):
        self._emit("WARNING", Fore.YELLOW, message)

    def debug(self, message: str):
        self._emit("DEBUG", Fore.MAGENTA, message)

    def step(self, message: str):
        self._emit("STEP", Fore.WHITE, message)

    def loading(self, message: str):
        self._emit("WAIT", Fore.CYAN, message)

    def tx(self, message: str):
        self._emit("TX", Fore.MAGENTA, message)

    def explorer(self, url: str):
        self._emit("EXPLORER", Fore.BLUE, url)

    def wallet(self, message: str):
        self._emit("WALLET", Fore.YELLOW, message)

    def action(self, action_name: str, details: str = ""):
        self._emit(action_name, Fore.BLUE, details)

    def account(self, account_num: int, total: int, address: str):
        separator = "=" * 25
        log_msg = (
            f"\n{Fore.CYAN + Style.BRIGHT}{separator}[ "
            f"{Fore.WHITE + Style.BRIGHT}Wallet {account_num}/{total}{Fore.CYAN + Style.BRIGHT} "
            f"]{separator}{Style.RESET_ALL}\n"
            f"{Fore.CYAN + Style.BRIGHT}Address:{Style.RESET_ALL} "
            f"{Fore.BLUE + Style.BRIGHT}{address[:8]}...{address[-6:]}{Style.RESET_ALL}"
        )
        print(log_msg, flush=True)
        self._write_to_file(f"\n{'='*70}\nWallet {account_num}/{total} | Address: {address}")

    def separator(self):
        sep = "=" * 70
        print(f"{Fore.CYAN + Style.BRIGHT}{sep}{Style.RESET_ALL}")
        self._write_to_file(sep)

    @staticmethod
    def print_banner():
        banner = f"""
{Fore.BLUE + Style.BRIGHT}╔═══════════════════════════════════════════════════════════════════╗
║                                                                   ║
║   {Fore.CYAN + Style.BRIGHT}██████╗ ██████╗     ██████╗  █████╗ ██╗██╗  ██╗   ██╗{Fore.BLUE}          ║
║   {Fore.CYAN + Style.BRIGHT}██╔══██╗╚════██╗    ██╔══██╗██╔══██╗██║██║  ╚██╗ ██╔╝{Fore.BLUE}          ║
║   {Fore.CYAN + Style.BRIGHT}██████╔╝ █████╔╝    ██║  ██║███████║██║██║   ╚████╔╝{Fore.BLUE}           ║
║   {Fore.CYAN + Style.BRIGHT}██╔══██╗██╔═══╝     ██║  ██║██╔══██║██║██║    ╚██╔╝{Fore.BLUE}            ║
║   {Fore.CYAN + Style.BRIGHT}██║  ██║███████╗    ██████╔╝██║  ██║██║███████╗██║{Fore.BLUE}             ║
║   {Fore.CYAN + Style.BRIGHT}╚═╝  ╚═╝╚══════╝    ╚═════╝ ╚═╝  ╚═╝╚═╝╚══════╝╚═╝{Fore.BLUE}             ║
║                                                                   ║
║              {Fore.WHITE + Style.BRIGHT}R2 TESTNET DAILY BOT v1.0{Fore.BLUE}                            ║
║                                                                   ║
║     {Fore.WHITE}buy · sell · swap · stake · liquidity, every 24 hours{Fore.BLUE}         ║
║                                                                   ║
╚═══════════════════════════════════════════════════════════════════╝{Style.RESET_ALL}
"""
        print(banner)


logger = Logger(log_to_file=os.getenv("LOG_TO_FILE", "1") != "0")
