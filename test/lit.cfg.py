# -*- Python -*-

import os
import shutil
import subprocess
import sys

import lit.formats

# lit configuration for the evmcards command line tests (test/cli/*.test).
# The unit tests under test/python run with pytest instead.

config.name = 'evmcards'
config.test_format = lit.formats.ShTest(True)
config.suffixes = ['.test']
config.test_source_root = os.path.dirname(__file__)
config.test_exec_root = os.path.join(config.test_source_root, 'Output')
config.excludes = ['python', 'Output']

project_root = os.path.dirname(config.test_source_root)

LLVM_BIN_DIRS = ['/usr/local/opt/llvm/bin', '/opt/homebrew/opt/llvm/bin', '/usr/lib/llvm/bin', '/usr/bin']


def find_tool(name):
    """Look up an LLVM test utility on PATH, then in the usual LLVM install dirs."""
    found = shutil.which(name)
    if found:
        return found
    for directory in LLVM_BIN_DIRS:
        candidate = os.path.join(directory, name)
        if os.path.exists(candidate):
            return candidate
    return None


# %evmcards: the installed entry point, or the module run with this interpreter
evmcards_cmd = getattr(config, 'evmcards', None) or shutil.which('evmcards')
if not evmcards_cmd:
    evmcards_cmd = f'{sys.executable} -m evmcards.cli.main'
config.substitutions.append(('%evmcards', evmcards_cmd))
config.substitutions.append(('%{rpc_url}', getattr(config, 'rpc_url', 'http://localhost:8545')))

for tool in ('not', 'FileCheck'):
    config.substitutions.append((tool, find_tool(tool) or tool))

# Plain output, and a scratch home so no test touches ~/.evmcards
config.environment['PYTHONPATH'] = os.pathsep.join([os.path.join(project_root, 'src')] + sys.path)
config.environment['NO_COLOR'] = '1'
config.environment['HOME'] = config.test_exec_root


def node_answers(rpc_url):
    try:
        import requests
        response = requests.post(
            rpc_url,
            json={"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []},
            timeout=2,
        )
        return response.ok
    except Exception:
        return False


# REQUIRES: rpc
if node_answers(getattr(config, 'rpc_url', 'http://localhost:8545')):
    config.available_features.add('rpc')

try:
    subprocess.run(evmcards_cmd.split() + ['--version'], check=True, capture_output=True,
                   env={**os.environ, 'PYTHONPATH': config.environment['PYTHONPATH']})
    config.available_features.add('evmcards')
except (OSError, subprocess.CalledProcessError):
    pass
