"""VM lifecycle management: create/delete cloud instances."""


def register_vm_command(subparsers):
    """Register the 'vm' command with create/delete action subparsers."""
    from devopsmate.commands.vm.civo import register_create_target, register_delete_target

    vm_parser = subparsers.add_parser("vm", help="Manage cloud instances")

    action_subparsers = vm_parser.add_subparsers(dest="action", required=True)

    # create action
    create_parser = action_subparsers.add_parser("create", help="Create an instance")
    create_subparsers = create_parser.add_subparsers(dest="provider", required=True)
    register_create_target(create_subparsers)

    # delete action
    delete_parser = action_subparsers.add_parser("delete", help="Delete an instance")
    delete_subparsers = delete_parser.add_subparsers(dest="provider", required=True)
    register_delete_target(delete_subparsers)
