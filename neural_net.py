import numpy as np

import config


def sigmoid(x):
    return 1 / (1 + np.exp(-x))


def mutate_values(values, rate, rng, step=config.MUTATION_STEP):
    """Return a mutated copy of values.

    Each entry independently, with probability rate, is nudged by
    uniform(-1, 1) * step. The input array is left untouched.
    """
    mask = rng.random(values.shape) < rate
    noise = rng.uniform(-1, 1, values.shape) * step
    return np.where(mask, values + noise, values)


class NeuralNetwork:
    def __init__(self, input_nodes, hidden_nodes, output_nodes, rng=None):
        if min(input_nodes, hidden_nodes, output_nodes) < 1:
            raise ValueError(
                f"Layer sizes must be positive, got "
                f"{input_nodes}/{hidden_nodes}/{output_nodes}")
        self.input_nodes = input_nodes
        self.hidden_nodes = hidden_nodes
        self.output_nodes = output_nodes

        rng = rng if rng is not None else np.random.default_rng()

        # Weights are (rows = next layer, cols = previous layer), biases are columns
        self.weights_input_hidden = rng.uniform(-1, 1, (hidden_nodes, input_nodes))
        self.weights_hidden_output = rng.uniform(-1, 1, (output_nodes, hidden_nodes))
        self.bias_hidden = rng.uniform(-1, 1, (hidden_nodes, 1))
        self.bias_output = rng.uniform(-1, 1, (output_nodes, 1))

    def predict(self, inputs):
        inputs = np.asarray(inputs, dtype=float).reshape(-1, 1)
        if inputs.shape[0] != self.input_nodes:
            raise ValueError(
                f"Expected {self.input_nodes} inputs, got {inputs.shape[0]}")

        # Input layer -> Hidden layer
        hidden = sigmoid(self.weights_input_hidden @ inputs + self.bias_hidden)

        # Hidden layer -> Output layer
        output = sigmoid(self.weights_hidden_output @ hidden + self.bias_output)

        return output.ravel().tolist()

    def get_weights(self):
        return [self.weights_input_hidden, self.bias_hidden,
                self.weights_hidden_output, self.bias_output]

    def set_weights(self, weights):
        weights = [np.array(w, dtype=float) for w in weights]
        for new, old in zip(weights, self.get_weights()):
            if new.shape != old.shape:
                raise ValueError(f"Weight shape {new.shape} does not match {old.shape}")
        (self.weights_input_hidden, self.bias_hidden,
         self.weights_hidden_output, self.bias_output) = weights

    def copy(self):
        new_net = NeuralNetwork.__new__(NeuralNetwork)
        new_net.input_nodes = self.input_nodes
        new_net.hidden_nodes = self.hidden_nodes
        new_net.output_nodes = self.output_nodes
        new_net.weights_input_hidden = self.weights_input_hidden.copy()
        new_net.weights_hidden_output = self.weights_hidden_output.copy()
        new_net.bias_hidden = self.bias_hidden.copy()
        new_net.bias_output = self.bias_output.copy()
        return new_net

    def mutate(self, rate=config.MUTATION_RATE, rng=None):
        if not 0 <= rate <= 1:
            raise ValueError(f"Mutation rate must be in [0, 1], got {rate}")
        rng = rng if rng is not None else np.random.default_rng()
        self.weights_input_hidden = mutate_values(self.weights_input_hidden, rate, rng)
        self.weights_hidden_output = mutate_values(self.weights_hidden_output, rate, rng)
        self.bias_hidden = mutate_values(self.bias_hidden, rate, rng)
        self.bias_output = mutate_values(self.bias_output, rate, rng)
