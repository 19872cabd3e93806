import typer

from wisebatch.enums import TransportErrorPolicy


def keys_callback(ctx: typer.Context, value: list[str]):
    if ctx.resilient_parsing:
        return
    keys = [key.strip() for key in value]
    if any(not key for key in keys):
        raise typer.BadParameter(
            message="lookup keys cannot be blank",
            param_hint="KEYS",
        )
    return keys


def policy_callback(ctx: typer.Context, value: str | None):
    if ctx.resilient_parsing or value is None:
        return value
    if value not in TransportErrorPolicy.__members__.values():
        raise typer.BadParameter(
            message=f"'{value}' is not a valid policy, supported policies are: {', '.join(TransportErrorPolicy.__members__.values())}",
            param_hint="--on-transport-error",
        )
    return value
