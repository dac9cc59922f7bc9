from s3ctl.cli import config

config_app = config.app
info_command = config.info_command
