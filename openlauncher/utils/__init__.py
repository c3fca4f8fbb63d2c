from .paths import (
    get_data_dir,
    get_default_install_root,
    get_game_dir,
    get_settings_path,
    is_within,
)
