from wisebatch.enums import TransportErrorPolicy


def complete_policy(value: str):
    for policy in TransportErrorPolicy.__members__.values():
        if policy.startswith(value):
            yield policy
