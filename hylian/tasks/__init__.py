from hylian.tasks.invitations import deliver_contract_invitations

__all__ = ["deliver_contract_invitations"]
