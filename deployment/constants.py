from pathlib import Path

from ape import project

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Networks
#

LOCAL = "ethereum-local"
POLYGON_AMOY = "polygon-amoy"
POLYGON_MAINNET = "polygon-mainnet"

SUPPORTED_NETWORKS = [LOCAL, POLYGON_AMOY, POLYGON_MAINNET]

CHAIN_IDS = {
    POLYGON_AMOY: 80002,
    POLYGON_MAINNET: 137,
}

# ape test provider and hardhat/anvil style forks
LOCAL_CHAIN_IDS = [1337, 31337]

#
# Contracts
#

OZ_DEPENDENCY_NAME = "openzeppelin"
OZ_DEPENDENCY_VERSION = "5.0.0"

PROXY_CONTRACT_NAME = "TransparentUpgradeableProxy"
PROXY_ADMIN_CONTRACT_NAME = "ProxyAdmin"
DEFAULT_INITIALIZER = "initialize"

# EIP1967 Admin slot - https://eips.ethereum.org/EIPS/eip-1967#admin-address
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

# EIP1967 Logic slot - https://eips.ethereum.org/EIPS/eip-1967#logic-contract-address
EIP1967_IMPLEMENTATION_SLOT = 0x360894A13BA1A3210667C828492DB98DCA3E2076CC3735A920A3CA505D382BBC

#
# Explorers
#

ETHERSCAN_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"
ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"


def get_oz_dependency():
    """Returns the OpenZeppelin dependency declared in ape-config.yaml."""
    return project.dependencies[OZ_DEPENDENCY_NAME][OZ_DEPENDENCY_VERSION]
