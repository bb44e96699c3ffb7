"""PyTorch autograd functions with analytic backward passes.

The integrals can be evaluated with torch tensors directly, in which case
autograd records every quadrature operation. The functions here instead
plug each integral into the graph as a single node: the forward pass
runs the NumPy evaluator and the backward pass the closed-form
reverse-mode gradient.
"""

from __future__ import annotations

from typing import Any

from pysnva.backend._array_api import get_backend
from pysnva.backend._torch_backend import _import_torch
from pysnva.quadrature._hermite import QuadratureRule
from pysnva.snva._entropy import entropy_term_gradient, evaluate_entropy_term
from pysnva.snva._families import IntegrandFamily
from pysnva.snva._integral import (
    _apply_offset,
    _check_sigma,
    _integral_value,
    _integral_value_and_grad,
)

_functions: dict[str, Any] = {}


def _build_functions() -> dict[str, Any]:
    torch = _import_torch()
    xp_np = get_backend("numpy")

    class FamilyIntegralFunction(torch.autograd.Function):
        @staticmethod
        def forward(ctx, mu, sigma, rho, family, rule):
            value = _integral_value(
                float(mu), float(sigma), float(rho), family, rule, xp_np
            )
            ctx.save_for_backward(mu, sigma, rho)
            ctx.family = family
            ctx.rule = rule
            return torch.as_tensor(float(value), dtype=mu.dtype, device=mu.device)

        @staticmethod
        def backward(ctx, grad_output):
            mu, sigma, rho = ctx.saved_tensors
            _, grad = _integral_value_and_grad(
                float(mu), float(sigma), float(rho), ctx.family, ctx.rule
            )
            seed = grad_output.detach()
            return (
                seed * float(grad[0]),
                seed * float(grad[1]),
                seed * float(grad[2]),
                None,
                None,
            )

    class EntropyTermFunction(torch.autograd.Function):
        @staticmethod
        def forward(ctx, sigma_sq, rule):
            value = evaluate_entropy_term(float(sigma_sq), rule, xp=xp_np)
            ctx.save_for_backward(sigma_sq)
            ctx.rule = rule
            return torch.as_tensor(
                float(value), dtype=sigma_sq.dtype, device=sigma_sq.device
            )

        @staticmethod
        def backward(ctx, grad_output):
            (sigma_sq,) = ctx.saved_tensors
            d = entropy_term_gradient(float(sigma_sq), ctx.rule)
            return grad_output.detach() * d, None

    return {"family": FamilyIntegralFunction, "entropy": EntropyTermFunction}


def _get_function(name: str):
    if not _functions:
        _functions.update(_build_functions())
    return _functions[name]


def family_integral_torch(
    mu,
    sigma,
    rho,
    family: IntegrandFamily | str,
    rule: QuadratureRule,
    *,
    offset=None,
):
    """Family integral as a single autograd node.

    Parameters
    ----------
    mu, sigma, rho : torch.Tensor or float
        Scalar skew-normal parameters.
    family : {"probit", "mlogit"} or IntegrandFamily
    rule : QuadratureRule
    offset : torch.Tensor or float, optional
        See :func:`evaluate_family_integral`. The offset map is recorded by
        autograd, so gradients also flow into a tensor offset.

    Returns
    -------
    value : torch.Tensor
        0-dimensional tensor.
    """
    family = IntegrandFamily.parse(family)
    xp = get_backend("torch")
    mu, sigma, rho = (xp.array(v) for v in (mu, sigma, rho))
    _check_sigma(sigma, xp)
    if offset is not None:
        offset = xp.array(offset)
    mu, rho = _apply_offset(mu, rho, family, offset)
    fn = _get_function("family")
    return fn.apply(mu.reshape(()), sigma.reshape(()), rho.reshape(()), family, rule)


def entropy_term_torch(sigma_sq, rule: QuadratureRule):
    """Entropy term as a single autograd node."""
    xp = get_backend("torch")
    sigma_sq = xp.array(sigma_sq).reshape(())
    return _get_function("entropy").apply(sigma_sq, rule)
