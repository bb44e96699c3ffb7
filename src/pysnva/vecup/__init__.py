"""Parameter transforms between raw optimizer vectors and variational parameters."""

from pysnva.vecup._skewness import (
    C1,
    GAMMA_MAX,
    SkewnessDomainWarning,
    cp_to_dp,
    dp_to_cp,
    gamma_to_nu,
    gamma_transform,
    gamma_transform_inv,
    linear_combination_params,
    nu_to_gamma,
)
from pysnva.vecup._trian import (
    get_factor_from_trian,
    get_trian_from_vcov,
    get_vcov_from_trian,
    n_trian,
)
from pysnva.vecup._unpack import (
    PARAM_TYPES,
    VariationalGroupParams,
    block_size,
    count_groups,
    pack_variational_params,
    theta_cp_trans_to_dp,
    theta_dp_to_dp,
    theta_gva,
    unpack_variational_params,
)

__all__ = [
    "n_trian",
    "get_factor_from_trian",
    "get_vcov_from_trian",
    "get_trian_from_vcov",
    "C1",
    "GAMMA_MAX",
    "SkewnessDomainWarning",
    "gamma_transform",
    "gamma_transform_inv",
    "gamma_to_nu",
    "nu_to_gamma",
    "cp_to_dp",
    "dp_to_cp",
    "linear_combination_params",
    "PARAM_TYPES",
    "VariationalGroupParams",
    "block_size",
    "count_groups",
    "theta_gva",
    "theta_dp_to_dp",
    "theta_cp_trans_to_dp",
    "unpack_variational_params",
    "pack_variational_params",
]
