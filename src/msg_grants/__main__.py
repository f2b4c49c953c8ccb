from msg_grants.cli import entrypoint

entrypoint()
