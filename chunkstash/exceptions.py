class ChunkStashException(Exception):
    def pretty_print_str(self):
        err = f"[bold][red]ChunkStashException: {str(self)}[/red][/bold]"
        return err


class KVStoreException(ChunkStashException):
    """Raised by a primitive store when an operation fails. Carries no reason beyond the message."""

    def pretty_print_str(self):
        err = f"[red][bold]:x: KVStoreException:[/bold] {str(self)}[/red]"
        return err


class StoreFailureException(ChunkStashException):
    def __init__(self, message, key=None, written_keys=None):
        super().__init__(message)
        self.key = key
        self.written_keys = written_keys or []

    def pretty_print_str(self):
        err = f"[red][bold]:x: StoreFailureException:[/bold] {str(self)}[/red]"
        err += "\n[bold][red]The value was not stored. Please retry the whole store operation.[/red][/bold]"
        return err


class RetrieveFailureException(ChunkStashException):
    def __init__(self, message, key=None):
        super().__init__(message)
        self.key = key

    def pretty_print_str(self):
        err = f"[red][bold]:x: RetrieveFailureException:[/bold] {str(self)}[/red]"
        return err


class NoSuchValueException(RetrieveFailureException):
    def pretty_print_str(self):
        err = f"[red][bold]:x: NoSuchValueException:[/bold] {str(self)}[/red]"
        err += "\n[bold][red]Please ensure that the value was stored and has not been cleared.[/red][/bold]"
        return err


class ClearFailureException(ChunkStashException):
    def pretty_print_str(self):
        err = f"[red][bold]:x: ClearFailureException:[/bold] {str(self)}[/red]"
        err += "\n[bold][red]Could not enumerate the keys of the store, nothing was removed.[/red][/bold]"
        return err


class BadConfigException(ChunkStashException):
    def pretty_print_str(self):
        err = f"[red][bold]:x: BadConfigException:[/bold] {str(self)}[/red]"
        err += "\n[bold][red]Please fix the value with `chunkstash config set`.[/red][/bold]"
        return err
