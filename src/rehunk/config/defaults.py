"""Starter .rehunk.toml template."""

DEFAULT_TOML = """\
# rehunk configuration
version = "1.0"

[rebase]
target_branch = "main"    # branch the edited commits sit on top of
remote = "origin"         # "" = use the local target branch
placeholder_prefix = "new-"

[output]
format = "terminal"       # terminal | json
show_trash = true

[logging]
level = "WARNING"         # DEBUG | INFO | WARNING | ERROR
"""
