import os
import shutil

# Get the test directory and project directory dynamically
script_dir = os.path.dirname(os.path.abspath(__file__))
project_dir = os.path.dirname(script_dir)

config.evmcards_dir = project_dir

# Find evmcards dynamically
if shutil.which('evmcards'):
    config.evmcards = shutil.which('evmcards')
elif os.path.exists(os.path.join(project_dir, 'venv', 'bin', 'evmcards')):
    config.evmcards = os.path.join(project_dir, 'venv', 'bin', 'evmcards')
else:
    config.evmcards = None
config.rpc_url = os.environ.get('ETH_RPC_URL', "http://localhost:8545")

# Load the main config
lit_config.load_config(config, os.path.join(script_dir, "lit.cfg.py"))
